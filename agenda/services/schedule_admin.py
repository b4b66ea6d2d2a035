"""
Owner-side maintenance of the schedule: business hours, weekly overrides and
blocks. Every successful write evicts the owner's cached months.
"""

import logging

from agenda.errors import NotFoundError, ValidationError
from agenda.schemas.schedule_schema import DateRangeBlock, RecurringBlock, ScheduleConfig, WeeklyOverride
from agenda.services.availability import AvailabilityService
from agenda.stores.base import AnyBlock, BlockStore, ConfigStore, OverrideStore
from agenda.utils import parse_time

logger = logging.getLogger(__name__)

MSG_TIME_ORDER = "Start time must be before end time."


def _ordered(start: str, end: str) -> bool:
    start_min = parse_time(start)
    end_min = parse_time(end)
    return start_min is not None and end_min is not None and start_min < end_min


class ScheduleAdmin:
    def __init__(
        self,
        availability: AvailabilityService,
        configs: ConfigStore,
        overrides: OverrideStore,
        blocks: BlockStore,
    ) -> None:
        self._availability = availability
        self._configs = configs
        self._overrides = overrides
        self._blocks = blocks

    def upsert_config(self, config: ScheduleConfig) -> ScheduleConfig:
        if not _ordered(config.opening_time, config.closing_time):
            raise ValidationError("Opening time must be before closing time.")
        saved = self._configs.upsert_config(config)
        self._availability.invalidate_owner_cache(config.owner_id)
        logger.info("Schedule config saved for owner %s", config.owner_id)
        return saved

    def replace_weekly(self, owner_id: str, overrides: list[WeeklyOverride]) -> list[WeeklyOverride]:
        """Upsert the given weekday rows. Active rows must have start < end."""
        seen: set[int] = set()
        for override in overrides:
            if override.weekday in seen:
                raise ValidationError(f"Weekday {override.weekday} given more than once.")
            seen.add(override.weekday)
            if override.active and not _ordered(override.start_time, override.end_time):
                raise ValidationError(MSG_TIME_ORDER)
        saved = self._overrides.replace_overrides(owner_id, overrides)
        self._availability.invalidate_owner_cache(owner_id)
        logger.info("Weekly overrides saved for owner %s (%d rows)", owner_id, len(overrides))
        return saved

    def add_recurring_block(self, block: RecurringBlock) -> RecurringBlock:
        if not _ordered(block.start_time, block.end_time):
            raise ValidationError(MSG_TIME_ORDER)
        return self._add(block)

    def add_date_range_block(self, block: DateRangeBlock) -> DateRangeBlock:
        if block.start_date > block.end_date:
            raise ValidationError("Start date must be on or before end date.")
        if block.is_timed and not _ordered(block.start_time, block.end_time):
            raise ValidationError(MSG_TIME_ORDER)
        return self._add(block)

    def add_block(self, block: AnyBlock) -> AnyBlock:
        if isinstance(block, RecurringBlock):
            return self.add_recurring_block(block)
        return self.add_date_range_block(block)

    def _add(self, block: AnyBlock) -> AnyBlock:
        saved = self._blocks.add_block(block)
        self._availability.invalidate_owner_cache(block.owner_id)
        logger.info("%s block %s created for owner %s", block.kind, saved.id, block.owner_id)
        return saved

    def delete_block(self, owner_id: str, block_id: str) -> None:
        if not self._blocks.delete_block(owner_id, block_id):
            raise NotFoundError(f"Block {block_id} not found.")
        self._availability.invalidate_owner_cache(owner_id)
        logger.info("Block %s deleted for owner %s", block_id, owner_id)

    def list_blocks(self, owner_id: str) -> list[AnyBlock]:
        return self._blocks.list_blocks(owner_id)
