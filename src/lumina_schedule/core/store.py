"""
Schedule Store - the canonical collection of schedule rules.

Mutations are optimistic: the local rule list changes immediately and is
visible to readers before the remote write returns. If the remote write
fails, the rules that mutation touched are restored from the snapshot taken
before it; changes made by other writers in the meantime are kept.

Without a user identity the store runs in local-only mode and never touches
the remote document store.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .bus import Event, EventBus
from .models import ScheduleRule

logger = logging.getLogger(__name__)

RuleDocument = Dict[str, Any]
WatchCallback = Callable[[List[RuleDocument]], None]


class DocumentStore(ABC):
    """
    Remote document store keyed by user ID.

    The host platform provides a concrete implementation (cloud document
    database, local file, etc.). Each write either succeeds or raises.
    """

    @abstractmethod
    def load(self, user_id: str) -> List[RuleDocument]:
        """Load all rule documents for a user."""
        pass

    @abstractmethod
    def add_rule(self, user_id: str, rule: RuleDocument) -> None:
        pass

    @abstractmethod
    def remove_rule(self, user_id: str, rule_id: str) -> None:
        pass

    @abstractmethod
    def update_rule(self, user_id: str, rule: RuleDocument) -> None:
        pass

    @abstractmethod
    def replace_all(self, user_id: str, rules: List[RuleDocument]) -> None:
        pass

    @abstractmethod
    def add_all(self, user_id: str, rules: List[RuleDocument]) -> None:
        pass

    @abstractmethod
    def watch(self, user_id: str, callback: WatchCallback) -> Callable[[], None]:
        """
        Subscribe to the user's rule list.

        Returns:
            Callable that cancels the subscription
        """
        pass


class InMemoryDocumentStore(DocumentStore):
    """
    Document store held in memory.

    Used for tests and local runs. `fail_next()` makes the next write raise.
    """

    def __init__(self) -> None:
        self._docs: Dict[str, List[RuleDocument]] = {}
        self._watchers: Dict[str, List[WatchCallback]] = {}
        self._fail_next: Optional[Exception] = None
        self.writes: List[str] = []

    def fail_next(self, error: Optional[Exception] = None) -> None:
        """Make the next write raise `error` (RuntimeError by default)."""
        self._fail_next = error or RuntimeError("simulated remote failure")

    def _write(self, op: str, user_id: str, docs: List[RuleDocument]) -> None:
        if self._fail_next is not None:
            error, self._fail_next = self._fail_next, None
            raise error
        self.writes.append(op)
        self._docs[user_id] = docs
        for callback in list(self._watchers.get(user_id, [])):
            callback([dict(d) for d in docs])

    def load(self, user_id: str) -> List[RuleDocument]:
        return [dict(d) for d in self._docs.get(user_id, [])]

    def add_rule(self, user_id: str, rule: RuleDocument) -> None:
        docs = [d for d in self.load(user_id) if d["id"] != rule["id"]]
        self._write("add_rule", user_id, docs + [dict(rule)])

    def remove_rule(self, user_id: str, rule_id: str) -> None:
        docs = [d for d in self.load(user_id) if d["id"] != rule_id]
        self._write("remove_rule", user_id, docs)

    def update_rule(self, user_id: str, rule: RuleDocument) -> None:
        docs = [dict(rule) if d["id"] == rule["id"] else d for d in self.load(user_id)]
        self._write("update_rule", user_id, docs)

    def replace_all(self, user_id: str, rules: List[RuleDocument]) -> None:
        self._write("replace_all", user_id, [dict(r) for r in rules])

    def add_all(self, user_id: str, rules: List[RuleDocument]) -> None:
        new_ids = {r["id"] for r in rules}
        docs = [d for d in self.load(user_id) if d["id"] not in new_ids]
        self._write("add_all", user_id, docs + [dict(r) for r in rules])

    def watch(self, user_id: str, callback: WatchCallback) -> Callable[[], None]:
        self._watchers.setdefault(user_id, []).append(callback)

        def cancel() -> None:
            watchers = self._watchers.get(user_id, [])
            if callback in watchers:
                watchers.remove(callback)

        return cancel


@dataclass
class _Mutation:
    """
    A pending optimistic change.

    `apply` builds the new rule list from the snapshot; `remote` performs the
    matching remote write and raises on failure.
    """

    name: str
    apply: Callable[[List[ScheduleRule]], List[ScheduleRule]]
    remote: Callable[[str], None]
    rule_id: Optional[str] = None


def _revert(
    current: List[ScheduleRule],
    snapshot: List[ScheduleRule],
    applied: List[ScheduleRule],
) -> List[ScheduleRule]:
    """
    Undo one mutation without discarding changes made since it was applied.

    Only rules whose entry differs between `snapshot` and `applied` are put
    back to their snapshot state; everything else keeps its current value.
    """
    before = {r.id: r for r in snapshot}
    after = {r.id: r for r in applied}
    touched = {rid for rid in before.keys() | after.keys() if before.get(rid) != after.get(rid)}
    latest = {r.id: r for r in current}

    restored: List[ScheduleRule] = []
    for rule in snapshot:
        if rule.id in touched:
            restored.append(rule)
        elif rule.id in latest:
            restored.append(latest[rule.id])

    seen = {r.id for r in restored}
    restored.extend(r for r in current if r.id not in seen and r.id not in touched)
    return restored


class ScheduleStore:
    """
    Owns ScheduleRule identity and the only writer of device_preset_id.

    Responsibilities:
    - Keep the in-memory rule list readers see
    - Apply mutations optimistically and roll back on remote failure
    - Follow the remote rule stream while a user is signed in
    - Publish `schedule.rules_changed` / `schedule.persist_failed` on the bus
    """

    def __init__(
        self,
        remote: Optional[DocumentStore] = None,
        bus: Optional[EventBus] = None,
        user_id: Optional[str] = None,
        initial_rules: Optional[List[ScheduleRule]] = None,
    ) -> None:
        self._remote = remote
        self._bus = bus
        self._user_id: Optional[str] = None
        self._rules: List[ScheduleRule] = list(initial_rules or [])
        self._lock = threading.RLock()
        self._cancel_watch: Optional[Callable[[], None]] = None

        if user_id:
            self.set_user(user_id)

    # =========================================================================
    # Identity
    # =========================================================================

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def is_persistent(self) -> bool:
        """True when mutations are written to the remote store."""
        return self._user_id is not None and self._remote is not None

    def set_user(self, user_id: Optional[str]) -> None:
        """
        Switch identity.

        Signing in loads the user's rules and follows the remote stream;
        signing out (None) keeps the current rules in local-only mode.
        """
        if self._cancel_watch:
            self._cancel_watch()
            self._cancel_watch = None

        self._user_id = user_id
        if not user_id or not self._remote:
            logger.info("Schedule store running in local-only mode")
            return

        try:
            docs = self._remote.load(user_id)
        except Exception as e:
            logger.error(f"Failed to load rules for {user_id}: {e}", exc_info=True)
            docs = None

        if docs is not None:
            self._on_remote_snapshot(docs)
        self._cancel_watch = self._remote.watch(user_id, self._on_remote_snapshot)
        logger.info(f"Schedule store following remote rules for {user_id}")

    def _on_remote_snapshot(self, docs: List[RuleDocument]) -> None:
        rules: List[ScheduleRule] = []
        for doc in docs:
            try:
                rules.append(ScheduleRule.from_dict(doc))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping unreadable rule document {doc.get('id')}: {e}")
        with self._lock:
            self._rules = rules
        self._publish("schedule.rules_changed", {"reason": "remote", "count": len(rules)})

    # =========================================================================
    # Reads
    # =========================================================================

    @property
    def rules(self) -> List[ScheduleRule]:
        """Current rules (a copy; safe to iterate while the store changes)."""
        with self._lock:
            return list(self._rules)

    def get(self, rule_id: str) -> Optional[ScheduleRule]:
        with self._lock:
            for rule in self._rules:
                if rule.id == rule_id:
                    return rule
        return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._rules)

    def enabled_rules(self) -> List[ScheduleRule]:
        return [r for r in self.rules if r.enabled]

    # =========================================================================
    # Mutations
    # =========================================================================

    def add_rule(self, rule: ScheduleRule) -> bool:
        """Add a rule (replacing any rule with the same ID)."""
        return self._execute(
            _Mutation(
                name="add_rule",
                rule_id=rule.id,
                apply=lambda rules: [r for r in rules if r.id != rule.id] + [rule],
                remote=lambda uid: self._remote.add_rule(uid, rule.to_dict()),
            )
        )

    def remove_rule(self, rule_id: str) -> bool:
        """
        Remove a rule.

        Returns:
            True if the rule existed and the removal persisted
        """
        if self.get(rule_id) is None:
            return False
        return self._execute(
            _Mutation(
                name="remove_rule",
                rule_id=rule_id,
                apply=lambda rules: [r for r in rules if r.id != rule_id],
                remote=lambda uid: self._remote.remove_rule(uid, rule_id),
            )
        )

    def update_rule(self, rule: ScheduleRule) -> bool:
        """Replace the stored rule that has the same ID."""
        if self.get(rule.id) is None:
            logger.warning(f"Cannot update unknown rule {rule.id}")
            return False
        return self._execute(
            _Mutation(
                name="update_rule",
                rule_id=rule.id,
                apply=lambda rules: [rule if r.id == rule.id else r for r in rules],
                remote=lambda uid: self._remote.update_rule(uid, rule.to_dict()),
            )
        )

    def toggle(self, rule_id: str, enabled: bool) -> bool:
        """Enable or disable a rule."""
        rule = self.get(rule_id)
        if rule is None:
            return False
        return self.update_rule(rule.with_enabled(enabled))

    def replace_all(self, rules: List[ScheduleRule]) -> bool:
        """Replace the whole rule set."""
        new_rules = list(rules)
        return self._execute(
            _Mutation(
                name="replace_all",
                apply=lambda _: list(new_rules),
                remote=lambda uid: self._remote.replace_all(
                    uid, [r.to_dict() for r in new_rules]
                ),
            )
        )

    def add_all(self, rules: List[ScheduleRule]) -> bool:
        """Add several rules at once (e.g. a confirmed multi-day plan)."""
        new_rules = list(rules)
        new_ids = {r.id for r in new_rules}
        return self._execute(
            _Mutation(
                name="add_all",
                apply=lambda current: [r for r in current if r.id not in new_ids] + new_rules,
                remote=lambda uid: self._remote.add_all(uid, [r.to_dict() for r in new_rules]),
            )
        )

    def _execute(self, mutation: _Mutation) -> bool:
        """
        Apply a mutation locally, then persist it.

        Returns:
            True if the mutation is in effect (persisted, or local-only mode)
        """
        with self._lock:
            snapshot = list(self._rules)
            applied = mutation.apply(snapshot)
            self._rules = list(applied)
            count = len(applied)

        logger.info(f"Schedule {mutation.name}: {len(snapshot)} -> {count} rules")
        self._publish(
            "schedule.rules_changed",
            {"reason": mutation.name, "count": count},
            rule_id=mutation.rule_id,
        )

        if not self.is_persistent:
            return True

        try:
            mutation.remote(self._user_id)
        except Exception as e:
            logger.error(
                f"Remote {mutation.name} failed, rolling back: {e}",
                exc_info=True,
            )
            with self._lock:
                self._rules = _revert(self._rules, snapshot, applied)
                count = len(self._rules)
            self._publish(
                "schedule.persist_failed",
                {"operation": mutation.name, "error": str(e)},
                rule_id=mutation.rule_id,
            )
            self._publish(
                "schedule.rules_changed",
                {"reason": "rollback", "count": count},
                rule_id=mutation.rule_id,
            )
            return False

        return True

    def _publish(
        self,
        event_type: str,
        payload: Dict[str, Any],
        rule_id: Optional[str] = None,
    ) -> None:
        if not self._bus:
            return
        self._bus.publish(
            Event(type=event_type, source="store", rule_id=rule_id, payload=payload)
        )
