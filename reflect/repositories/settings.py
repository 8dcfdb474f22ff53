"""
Device-level key/value settings.
"""
from datetime import datetime
from typing import Any, Optional

from ..logging_config import repo_logger
from ..models import AppSettingRecord

ONBOARDING_COMPLETE_KEY = "has_completed_onboarding"


class AppSettingsRepository:
    def __init__(self, store):
        self.store = store

    async def get(self, key: str, default: Optional[Any] = None) -> Any:
        record = await self.store.fetch_by_id(AppSettingRecord, key)
        return record.value if record is not None else default

    async def set(self, key: str, value: Any) -> None:
        async with self.store.transaction("set app setting") as session:
            await session.merge(AppSettingRecord(key=key, value=value, updated_at=datetime.now()))
        repo_logger.debug("App setting stored", key=key)

    async def delete(self, key: str) -> bool:
        return await self.store.batch_delete(AppSettingRecord, AppSettingRecord.key == key) > 0

    # ── Onboarding flag ───────────────────────────────────────

    async def has_completed_onboarding(self) -> bool:
        return bool(await self.get(ONBOARDING_COMPLETE_KEY, False))

    async def mark_onboarding_complete(self) -> None:
        await self.set(ONBOARDING_COMPLETE_KEY, True)

    async def reset_onboarding(self) -> None:
        await self.delete(ONBOARDING_COMPLETE_KEY)
