"""
In-memory conversation reference store for proactive messaging.

Each inbound activity refreshes the reference for its sender. References are
keyed by the Teams user id; the sender's AAD object id is registered as an
alias of that key so callers that only know the directory identity can still
reach the user.
"""
import copy
import logging
import threading
from typing import Dict, Optional, Set

from botbuilder.core import TurnContext
from botbuilder.schema import Activity, ConversationReference

logger = logging.getLogger(__name__)


class ConversationReferenceStore:
    """
    Last-write-wins map from user key to ConversationReference.

    Operations are serialized with a lock so the store can be shared by
    request handlers running on different threads.
    """

    def __init__(self):
        self._references: Dict[str, ConversationReference] = {}
        self._aliases: Dict[str, str] = {}
        self._lock = threading.Lock()

    def record(self, activity: Activity) -> Optional[ConversationReference]:
        """
        Capture the conversation reference of an inbound activity.

        Args:
            activity: Incoming Bot Framework activity

        Returns:
            The stored reference, or None when the activity has no sender id
        """
        sender = activity.from_property if activity else None
        user_id = sender.id if sender else None
        if not user_id:
            logger.warning("Activity has no sender id - conversation reference not stored")
            return None

        reference = copy.deepcopy(TurnContext.get_conversation_reference(activity))
        aad_object_id = getattr(sender, "aad_object_id", None)

        with self._lock:
            self._references[user_id] = reference
            if aad_object_id and aad_object_id != user_id:
                self._aliases[aad_object_id] = user_id

        logger.debug(
            f"Stored conversation reference for {user_id} "
            f"(conversation {reference.conversation.id if reference.conversation else 'None'})"
        )
        return reference

    def get(self, key: str) -> Optional[ConversationReference]:
        """Look up a reference by user id, then by AAD object id alias."""
        with self._lock:
            reference = self._references.get(key)
            if reference is None and key in self._aliases:
                reference = self._references.get(self._aliases[key])
            return reference

    def list_keys(self) -> Set[str]:
        """All keys that currently resolve to a reference."""
        with self._lock:
            return set(self._references) | {
                alias for alias, primary in self._aliases.items()
                if primary in self._references
            }

    def clear(self):
        """Forget every stored reference."""
        with self._lock:
            count = len(self._references)
            self._references.clear()
            self._aliases.clear()
        logger.info(f"Cleared {count} conversation references")

    def __len__(self) -> int:
        with self._lock:
            return len(self._references)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
