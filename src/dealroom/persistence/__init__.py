"""
The `persistence` package is the chat core's view of the relational store.

Contents
--------
- Database
    Engine and session factory; creates the tables on startup.
- MessageStore
    Creates chat messages, lists a room's history, marks messages read.
- NotificationStore
    Persists mailbox entries and serves the pull-based notification list.
- ProposalStatusTracker
    Promotes a proposal to NEGOTIATING once its participants start talking.
"""

from dealroom.persistence.database import Database
from dealroom.persistence.messages import MessageStore
from dealroom.persistence.notifications import NotificationStore
from dealroom.persistence.proposals import ProposalStatusTracker

__all__ = ["Database", "MessageStore", "NotificationStore", "ProposalStatusTracker"]
