"""
Media item repository: attachments, storage accounting and orphan cleanup.
"""
from datetime import date, datetime
from typing import Iterable, List, Optional, Set
from uuid import UUID

from sqlalchemy import func, or_, select

from ..dates import day_bounds
from ..errors import conflict
from ..logging_config import repo_logger, timed
from ..mappers import apply_media, media_to_record, record_to_media
from ..models import MediaItemRecord, PostRecord
from ..schemas import MediaItem, MediaType
from .base import Repository, key

# Thumbnails are not sized on disk; each one is estimated at 50 KB
THUMBNAIL_SIZE_ESTIMATE = 50_000

IN_POST_ORDER = (MediaItemRecord.position, MediaItemRecord.created_at)
NEWEST_FIRST = (MediaItemRecord.created_at.desc(), MediaItemRecord.id)

_ORPHANED = PostRecord.id.is_(None)


class MediaItemRepository(Repository):
    resource = "MediaItem"
    model = MediaItemRecord

    # ============================================================
    # CRUD
    # ============================================================

    async def _next_position(self, session, post_id: UUID) -> int:
        last = await session.scalar(
            select(func.max(MediaItemRecord.position)).where(MediaItemRecord.post_id == key(post_id))
        )
        return 0 if last is None else last + 1

    @timed(repo_logger)
    async def create(self, item: MediaItem) -> MediaItem:
        """Attach a media item to the end of its post's media list."""
        async with self.store.transaction("create media item") as session:
            await self._require_reference(session, PostRecord, item.post_id, "Post")
            if await session.get(MediaItemRecord, key(item.id)) is not None:
                conflict(f"Media item '{item.id}' already exists", details={"id": str(item.id)})
            session.add(media_to_record(item, position=await self._next_position(session, item.post_id)))

        repo_logger.info("Media item created", media_id=str(item.id), post_id=str(item.post_id), type=item.type.value)
        return item

    async def create_batch(self, items: Iterable[MediaItem]) -> List[MediaItem]:
        items = list(items)
        async with self.store.transaction("create media items") as session:
            positions = {}
            for item in items:
                post_key = key(item.post_id)
                if post_key not in positions:
                    await self._require_reference(session, PostRecord, item.post_id, "Post")
                    positions[post_key] = await self._next_position(session, item.post_id)
                session.add(media_to_record(item, position=positions[post_key]))
                positions[post_key] += 1

        repo_logger.info("Media items created", count=len(items))
        return items

    async def fetch(self, id: UUID) -> Optional[MediaItem]:
        record = await self.store.fetch_by_id(MediaItemRecord, key(id))
        return record_to_media(record) if record else None

    async def fetch_all(self) -> List[MediaItem]:
        return await self._fetch()

    async def update(self, item: MediaItem) -> MediaItem:
        async with self.store.transaction("update media item") as session:
            record = await self._get_or_404(session, item.id)
            if record.post_id != key(item.post_id):
                await self._require_reference(session, PostRecord, item.post_id, "Post")
                record.position = await self._next_position(session, item.post_id)
            apply_media(record, item)
        return item

    async def delete(self, id: UUID) -> None:
        await self._delete_or_404(id)
        repo_logger.info("Media item deleted", media_id=str(id))

    async def delete_batch(self, ids: Iterable[UUID]) -> int:
        return await self.store.delete_many(MediaItemRecord, [key(i) for i in ids])

    # ============================================================
    # QUERIES
    # ============================================================

    async def _fetch(self, *criteria, order_by=NEWEST_FIRST, limit: Optional[int] = None) -> List[MediaItem]:
        records = await self.store.fetch(MediaItemRecord, *criteria, order_by=order_by, limit=limit)
        return [record_to_media(r) for r in records]

    async def fetch_media_items(self, post_id: UUID) -> List[MediaItem]:
        """A post's media in display order."""
        return await self._fetch(MediaItemRecord.post_id == key(post_id), order_by=IN_POST_ORDER)

    async def fetch_primary_media_item(self, post_id: UUID) -> Optional[MediaItem]:
        items = await self._fetch(MediaItemRecord.post_id == key(post_id), order_by=IN_POST_ORDER, limit=1)
        return items[0] if items else None

    async def fetch_media_item_count(self, post_id: UUID) -> int:
        return await self.store.count(MediaItemRecord, MediaItemRecord.post_id == key(post_id))

    async def delete_all_media_items(self, post_id: UUID) -> int:
        return await self.store.batch_delete(MediaItemRecord, MediaItemRecord.post_id == key(post_id))

    async def fetch_photos(self) -> List[MediaItem]:
        return await self._fetch(MediaItemRecord.media_type == MediaType.PHOTO.value)

    async def fetch_videos(self) -> List[MediaItem]:
        return await self._fetch(MediaItemRecord.media_type == MediaType.VIDEO.value)

    async def fetch_photos_for_post(self, post_id: UUID) -> List[MediaItem]:
        return await self._fetch(
            MediaItemRecord.post_id == key(post_id),
            MediaItemRecord.media_type == MediaType.PHOTO.value,
            order_by=IN_POST_ORDER,
        )

    async def fetch_videos_for_post(self, post_id: UUID) -> List[MediaItem]:
        return await self._fetch(
            MediaItemRecord.post_id == key(post_id),
            MediaItemRecord.media_type == MediaType.VIDEO.value,
            order_by=IN_POST_ORDER,
        )

    async def fetch_media_items_in_range(self, start: datetime, end: datetime) -> List[MediaItem]:
        return await self._fetch(MediaItemRecord.created_at >= start, MediaItemRecord.created_at <= end)

    async def fetch_media_items_on(self, day: date) -> List[MediaItem]:
        start, end = day_bounds(day)
        return await self._fetch(MediaItemRecord.created_at >= start, MediaItemRecord.created_at < end)

    async def fetch_largest_media_items(self, limit: int) -> List[MediaItem]:
        return await self._fetch(
            order_by=(MediaItemRecord.file_size.desc(), MediaItemRecord.created_at.desc()), limit=limit
        )

    # ============================================================
    # STORAGE
    # ============================================================

    async def _storage(self, *criteria) -> int:
        stmt = select(func.coalesce(func.sum(MediaItemRecord.file_size), 0))
        if criteria:
            stmt = stmt.where(*criteria)
        return int(await self.store.scalar(stmt))

    async def fetch_total_storage_used(self) -> int:
        """Bytes used by all media files, thumbnails excluded."""
        return await self._storage()

    async def fetch_photo_storage_used(self) -> int:
        return await self._storage(MediaItemRecord.media_type == MediaType.PHOTO.value)

    async def fetch_video_storage_used(self) -> int:
        return await self._storage(MediaItemRecord.media_type == MediaType.VIDEO.value)

    async def fetch_thumbnail_storage_used(self) -> int:
        thumbnails = await self.store.count(MediaItemRecord, MediaItemRecord.thumbnail_filename.is_not(None))
        return thumbnails * THUMBNAIL_SIZE_ESTIMATE

    async def fetch_photo_count(self) -> int:
        return await self.store.count(MediaItemRecord, MediaItemRecord.media_type == MediaType.PHOTO.value)

    async def fetch_video_count(self) -> int:
        return await self.store.count(MediaItemRecord, MediaItemRecord.media_type == MediaType.VIDEO.value)

    async def fetch_total_media_count(self) -> int:
        return await self.store.count(MediaItemRecord)

    # ============================================================
    # CLEANUP
    # ============================================================

    async def fetch_orphaned_media_items(self) -> List[MediaItem]:
        """Media whose post no longer exists. Only possible with foreign keys off."""
        stmt = (
            select(MediaItemRecord)
            .outerjoin(PostRecord, MediaItemRecord.post_id == PostRecord.id)
            .where(_ORPHANED)
            .order_by(*NEWEST_FIRST)
        )
        async with self.store.session() as session:
            records = (await session.scalars(stmt)).all()
        return [record_to_media(r) for r in records]

    @timed(repo_logger)
    async def delete_orphaned_media_items(self) -> int:
        orphan_ids = select(MediaItemRecord.id).outerjoin(
            PostRecord, MediaItemRecord.post_id == PostRecord.id
        ).where(_ORPHANED)
        removed = await self.store.batch_delete(MediaItemRecord, MediaItemRecord.id.in_(orphan_ids))
        if removed:
            repo_logger.warning("Orphaned media items removed", count=removed)
        return removed

    async def fetch_media_items_older_than(self, cutoff: datetime) -> List[MediaItem]:
        return await self._fetch(MediaItemRecord.created_at < cutoff)

    async def delete_media_items_older_than(self, cutoff: datetime) -> int:
        return await self.store.batch_delete(MediaItemRecord, MediaItemRecord.created_at < cutoff)

    # ============================================================
    # FILENAMES
    # ============================================================

    async def fetch_all_filenames(self) -> Set[str]:
        rows = await self.store.rows(select(MediaItemRecord.filename))
        return {filename for (filename,) in rows}

    async def fetch_all_thumbnail_filenames(self) -> Set[str]:
        rows = await self.store.rows(
            select(MediaItemRecord.thumbnail_filename).where(MediaItemRecord.thumbnail_filename.is_not(None))
        )
        return {filename for (filename,) in rows}

    async def is_filename_in_use(self, filename: str) -> bool:
        """True if any media item references the name as its file or thumbnail."""
        return await self.store.count(
            MediaItemRecord,
            or_(MediaItemRecord.filename == filename, MediaItemRecord.thumbnail_filename == filename),
        ) > 0
