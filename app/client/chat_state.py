# app/client/chat_state.py
from datetime import datetime
from typing import Any, Dict, List, Optional

SUMMARY_FIELDS = ("last_message", "last_message_time", "last_sender_id")
GROUP_SUMMARY_FIELDS = SUMMARY_FIELDS + ("last_sender_name",)


def _time_key(value: Optional[str]) -> datetime:
    if not value:
        return datetime.min
    try:
        return datetime.fromisoformat(value).replace(tzinfo=None)
    except ValueError:
        return datetime.min


def _latest(thread: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not thread:
        return None
    return max(thread, key=lambda m: (_time_key(m.get("created_at")), str(m["id"])))


class PendingSend:
    """An optimistic send waiting for its acknowledgement."""

    def __init__(self, kind: str, target_id: int, temp_id: str, previous: Optional[Dict[str, Any]], future):
        self.kind = kind
        self.target_id = target_id
        self.temp_id = temp_id
        self.previous = previous
        self.future = future


class ChatState:
    """
    Client-side view of conversations and groups.

    `messages` and `group_messages` hold each thread oldest first; the
    summary lists are kept sorted by last activity, newest first.
    """

    def __init__(self):
        self.conversations: List[Dict[str, Any]] = []
        self.messages: Dict[int, List[Dict[str, Any]]] = {}
        self.groups: List[Dict[str, Any]] = []
        self.group_messages: Dict[int, List[Dict[str, Any]]] = {}
        self.users: List[Dict[str, Any]] = []
        self.pending: Dict[str, PendingSend] = {}

    # --- message lists ---

    @staticmethod
    def _add(thread: List[Dict[str, Any]], message: Dict[str, Any]) -> bool:
        if any(m["id"] == message["id"] for m in thread):
            return False
        thread.append(message)
        return True

    @staticmethod
    def _replace(thread: List[Dict[str, Any]], old_id, message: Dict[str, Any]) -> None:
        for idx, existing in enumerate(thread):
            if existing["id"] == old_id:
                if any(m["id"] == message["id"] for m in thread):
                    del thread[idx]
                else:
                    thread[idx] = message
                return
        ChatState._add(thread, message)

    @staticmethod
    def _remove(thread: List[Dict[str, Any]], message_id) -> None:
        thread[:] = [m for m in thread if m["id"] != message_id]

    def add_message(self, other_user_id: int, message: Dict[str, Any]) -> bool:
        return self._add(self.messages.setdefault(other_user_id, []), message)

    def replace_message(self, other_user_id: int, old_id, message: Dict[str, Any]) -> None:
        self._replace(self.messages.setdefault(other_user_id, []), old_id, message)

    def remove_message(self, other_user_id: int, message_id) -> None:
        self._remove(self.messages.setdefault(other_user_id, []), message_id)

    def set_messages(self, other_user_id: int, messages: List[Dict[str, Any]]) -> None:
        thread = self.messages.setdefault(other_user_id, [])
        for message in messages:
            self._add(thread, message)
        thread.sort(key=lambda m: (_time_key(m.get("created_at")), str(m["id"])))

    def add_group_message(self, group_id: int, message: Dict[str, Any]) -> bool:
        return self._add(self.group_messages.setdefault(group_id, []), message)

    def replace_group_message(self, group_id: int, old_id, message: Dict[str, Any]) -> None:
        self._replace(self.group_messages.setdefault(group_id, []), old_id, message)

    def remove_group_message(self, group_id: int, message_id) -> None:
        self._remove(self.group_messages.setdefault(group_id, []), message_id)

    def set_group_messages(self, group_id: int, messages: List[Dict[str, Any]]) -> None:
        thread = self.group_messages.setdefault(group_id, [])
        for message in messages:
            self._add(thread, message)
        thread.sort(key=lambda m: (_time_key(m.get("created_at")), str(m["id"])))

    # --- summaries ---

    def _sort_conversations(self) -> None:
        self.conversations.sort(key=lambda c: _time_key(c.get("last_message_time")), reverse=True)

    def _sort_groups(self) -> None:
        self.groups.sort(
            key=lambda g: _time_key(g.get("last_message_time") or g.get("created_at")), reverse=True
        )

    def find_conversation(self, other_user_id: int) -> Optional[Dict[str, Any]]:
        return next((c for c in self.conversations if c["other_user_id"] == other_user_id), None)

    def find_group(self, group_id: int) -> Optional[Dict[str, Any]]:
        return next((g for g in self.groups if g["id"] == group_id), None)

    def update_conversation(
        self, other_user_id: int, last_message: str, last_message_time: str, last_sender_id: int,
        unread_increment: int = 0,
    ) -> Optional[Dict[str, Any]]:
        """
        Move the conversation to the top with a new last message. Returns the
        previous last-message fields (None when the conversation did not exist).
        """
        entry = self.find_conversation(other_user_id)
        previous = {k: entry.get(k) for k in SUMMARY_FIELDS} if entry else None
        if entry is None:
            entry = {"other_user_id": other_user_id, "unread_count": 0}
            self.conversations.append(entry)
        entry["last_message"] = last_message
        entry["last_message_time"] = last_message_time
        entry["last_sender_id"] = last_sender_id
        entry["unread_count"] = entry.get("unread_count", 0) + unread_increment
        self._sort_conversations()
        return previous

    def revert_conversation(self, other_user_id: int, previous: Optional[Dict[str, Any]]) -> None:
        """
        Undo an optimistic summary update after its temp message was removed.

        The last-message fields are taken from the newest message still in
        the thread, so anything that arrived meanwhile is kept; `unread_count`
        is never touched. With an empty thread the fields fall back to
        `previous`, and a conversation that only existed because of the
        optimistic send is dropped.
        """
        entry = self.find_conversation(other_user_id)
        if entry is None:
            return
        latest = _latest(self.messages.get(other_user_id) or [])
        if latest is not None:
            entry["last_message"] = latest["message_text"]
            entry["last_message_time"] = latest["created_at"]
            entry["last_sender_id"] = latest["sender_id"]
        elif previous is not None:
            entry.update(previous)
        else:
            self.conversations.remove(entry)
            return
        self._sort_conversations()

    def update_group(
        self, group_id: int, last_message: str, last_message_time: str, last_sender_id: int,
        last_sender_name: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        entry = self.find_group(group_id)
        if entry is None:
            return None
        previous = {k: entry.get(k) for k in GROUP_SUMMARY_FIELDS}
        entry["last_message"] = last_message
        entry["last_message_time"] = last_message_time
        entry["last_sender_id"] = last_sender_id
        if last_sender_name is not None:
            entry["last_sender_name"] = last_sender_name
        self._sort_groups()
        return previous

    def revert_group(self, group_id: int, previous: Optional[Dict[str, Any]]) -> None:
        # groups outlive their messages, so the entry is never dropped
        entry = self.find_group(group_id)
        if entry is None:
            return
        latest = _latest(self.group_messages.get(group_id) or [])
        if latest is not None:
            entry["last_message"] = latest["message_text"]
            entry["last_message_time"] = latest["created_at"]
            entry["last_sender_id"] = latest["sender_id"]
            entry["last_sender_name"] = latest.get("sender_name")
        elif previous is not None:
            entry.update(previous)
        self._sort_groups()
