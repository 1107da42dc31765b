"""Deterministic rewrites of records written with the older vocabulary.

Each ``plan_*`` function inspects one raw DynamoDB item and returns the
attributes to set and remove. When a legacy attribute and its canonical
replacement are both present and disagree, the record is reported as a
conflict and left untouched.
"""

from dataclasses import dataclass, field
from typing import Any

from golive.auth.passwords import check_password, hash_password
from golive.config import settings
from golive.exceptions import InvalidInputError
from golive.logging.config import get_logger
from golive.models.event import EVENT_TYPES, LEGACY_ACCESS_MODES
from golive.repositories.base import BaseRepository, build_set_expression
from golive.repositories.event_secret_repository import EventSecretRepository
from golive.services.event_service import parse_registration_fields
from golive.utils.clock import normalize_iso, system_clock
from golive.utils.sealing import seal

logger = get_logger(__name__)

LEGACY_PAYMENT_STATUSES = {"paid": "succeeded"}


@dataclass
class MigrationPlan:
    """Changes for one record; ``plaintext_password`` is hashed and sealed on apply."""

    key: dict[str, str]
    set_fields: dict[str, Any] = field(default_factory=dict)
    remove_fields: list[str] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)
    plaintext_password: str | None = None

    @property
    def changed(self) -> bool:
        return bool(self.set_fields or self.remove_fields or self.plaintext_password)


def _fields_payload(fields: list) -> list[dict[str, Any]]:
    return [f.model_dump(by_alias=True) for f in fields]


def plan_event_migration(item: dict[str, Any]) -> MigrationPlan:
    """
    Plan the rewrite of one event item.

    Handles ``paymentAccess``/``openAccess`` access modes, ``type``,
    ``dateTime``, ``formFields`` and plaintext ``accessPassword``/``password``.
    """
    plan = MigrationPlan(key={"eventId": item["eventId"]})

    mode = item.get("accessMode")
    if mode in LEGACY_ACCESS_MODES:
        plan.set_fields["accessMode"] = LEGACY_ACCESS_MODES[mode]

    if "type" in item:
        legacy_type = item["type"]
        current = item.get("eventType")
        if legacy_type not in EVENT_TYPES:
            plan.conflicts.append(f"type has unknown value {legacy_type!r}")
        elif current is None:
            plan.set_fields["eventType"] = legacy_type
            plan.remove_fields.append("type")
        elif current == legacy_type:
            plan.remove_fields.append("type")
        else:
            plan.conflicts.append("type and eventType disagree")

    if "dateTime" in item:
        try:
            legacy_start = normalize_iso(str(item["dateTime"]), "dateTime")
        except InvalidInputError:
            plan.conflicts.append("dateTime is not a valid timestamp")
        else:
            current = item.get("startTime")
            if current is None:
                plan.set_fields["startTime"] = legacy_start
                plan.remove_fields.append("dateTime")
            elif normalize_iso(current, "startTime") == legacy_start:
                plan.remove_fields.append("dateTime")
            else:
                plan.conflicts.append("dateTime and startTime disagree")

    if "formFields" in item:
        try:
            legacy_fields = _fields_payload(parse_registration_fields(item["formFields"]))
        except InvalidInputError:
            plan.conflicts.append("formFields cannot be parsed")
        else:
            current = item.get("registrationFields")
            if current is None:
                plan.set_fields["registrationFields"] = legacy_fields
                plan.remove_fields.append("formFields")
            elif _fields_payload(parse_registration_fields(current)) == legacy_fields:
                plan.remove_fields.append("formFields")
            else:
                plan.conflicts.append("formFields and registrationFields disagree")

    _plan_password(item, plan)

    if plan.conflicts:
        plan.set_fields.clear()
        plan.remove_fields.clear()
        plan.plaintext_password = None
    return plan


def _plan_password(item: dict[str, Any], plan: MigrationPlan) -> None:
    candidates = {
        name: item[name]
        for name in ("accessPassword", "password")
        if isinstance(item.get(name), str) and item[name]
    }
    if not candidates:
        return
    if len(set(candidates.values())) > 1:
        plan.conflicts.append("accessPassword and password disagree")
        return

    plaintext = next(iter(candidates.values()))
    existing_hash = item.get("accessPasswordHash")
    if existing_hash and not check_password(plaintext, existing_hash):
        plan.conflicts.append("plaintext password does not match accessPasswordHash")
        return

    plan.remove_fields.extend(candidates)
    plan.plaintext_password = plaintext


def plan_viewer_migration(item: dict[str, Any]) -> MigrationPlan:
    """Plan the rewrite of one viewer item (``viewerpaid`` and ``paid`` status)."""
    plan = MigrationPlan(
        key={"eventId": item["eventId"], "clientViewerId": item["clientViewerId"]}
    )

    if "viewerpaid" in item:
        legacy_paid = bool(item["viewerpaid"])
        current = item.get("isPaidViewer")
        if current is None:
            plan.set_fields["isPaidViewer"] = legacy_paid
            plan.remove_fields.append("viewerpaid")
        elif bool(current) == legacy_paid:
            plan.remove_fields.append("viewerpaid")
        else:
            plan.conflicts.append("viewerpaid and isPaidViewer disagree")

    status = item.get("paymentStatus")
    if status in LEGACY_PAYMENT_STATUSES:
        plan.set_fields["paymentStatus"] = LEGACY_PAYMENT_STATUSES[status]

    if plan.conflicts:
        plan.set_fields.clear()
        plan.remove_fields.clear()
    return plan


@dataclass
class MigrationReport:
    scanned: int = 0
    migrated: int = 0
    conflicts: list[dict[str, Any]] = field(default_factory=list)


class LegacyMigrator:
    """
    Scans a table and applies migration plans.

    Every write is conditional on the record still existing; plaintext
    passwords are replaced by a bcrypt hash and a sealed copy in the
    event-secrets table.
    """

    def __init__(
        self,
        events: BaseRepository | None = None,
        viewers: BaseRepository | None = None,
        secrets: EventSecretRepository | None = None,
        dry_run: bool = False,
    ) -> None:
        self.events = events or BaseRepository(settings.dynamodb_table_events)
        self.viewers = viewers or BaseRepository(settings.dynamodb_table_viewers)
        self.secrets = secrets or EventSecretRepository()
        self.dry_run = dry_run

    async def migrate_events(self) -> MigrationReport:
        return await self._migrate(self.events, plan_event_migration, "eventId")

    async def migrate_viewers(self) -> MigrationReport:
        return await self._migrate(self.viewers, plan_viewer_migration, "eventId")

    async def _migrate(self, repository: BaseRepository, planner, key_attribute: str) -> MigrationReport:
        report = MigrationReport()
        start_key = None
        while True:
            items, start_key = await repository.scan(exclusive_start_key=start_key)
            for item in items:
                report.scanned += 1
                plan = planner(item)
                if plan.conflicts:
                    report.conflicts.append({"key": plan.key, "conflicts": plan.conflicts})
                    logger.warning(
                        "Legacy record left untouched",
                        extra={"context": {"key": plan.key, "conflicts": plan.conflicts}},
                    )
                    continue
                if not plan.changed:
                    continue
                if not self.dry_run:
                    await self._apply(repository, plan, key_attribute)
                report.migrated += 1
            if not start_key:
                return report

    async def _apply(self, repository: BaseRepository, plan: MigrationPlan, key_attribute: str) -> None:
        now = system_clock.now_iso()
        fields = dict(plan.set_fields)
        if plan.plaintext_password is not None:
            event_id = plan.key["eventId"]
            await self.secrets.put_sealed_password(event_id, seal(plan.plaintext_password), now)
            fields["accessPasswordHash"] = hash_password(plan.plaintext_password)
        fields["updatedAt"] = now

        expression, names, values = build_set_expression(fields)
        if plan.remove_fields:
            removed = []
            for index, attribute in enumerate(plan.remove_fields):
                names[f"#r{index}"] = attribute
                removed.append(f"#r{index}")
            expression += " REMOVE " + ", ".join(removed)
        names["#key"] = key_attribute
        await repository.update_item(
            key=plan.key,
            update_expression=expression,
            expression_values=values,
            expression_names=names,
            condition_expression="attribute_exists(#key)",
        )
        logger.info("Legacy record migrated", extra={"context": {"key": plan.key}})
