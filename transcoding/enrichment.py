"""
Read-time overlay of transcoding state onto embedded media references.

Content documents store media as plain dicts (``{"type", "url", "public_id"}``)
and never carry transcoding state themselves. These helpers join them against
``MediaRecord`` when content is served; nothing is written back.
"""
from content.models import MediaRecord

STATUS_UNKNOWN = "unknown"
STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_PENDING = "pending"


def _public_id(item: dict):
    return item.get("public_id") or item.get("publicId")


def _is_video(item: dict) -> bool:
    return item.get("type") == "video"


def _lookup(public_ids) -> dict:
    ids = {pid for pid in public_ids if pid}
    if not ids:
        return {}
    rows = MediaRecord.objects.filter(public_id__in=ids).values(
        "public_id", "url", "is_transcoding", "transcoding_completed", "transcoding_job_id"
    )
    return {row["public_id"]: row for row in rows}


def _overlay(item: dict, records: dict) -> dict:
    enriched = dict(item)
    if not _is_video(item):
        enriched["is_playable"] = True
        return enriched

    record = records.get(_public_id(item))
    if record is None:
        # orphaned reference: keep it playable rather than hide it
        enriched.update(
            is_transcoding=False,
            transcoding_completed=False,
            transcoding_status=STATUS_UNKNOWN,
            is_playable=True,
        )
        return enriched

    job_id = record["transcoding_job_id"]
    enriched.update(
        is_transcoding=record["is_transcoding"],
        transcoding_completed=record["transcoding_completed"],
        transcoding_job_id=str(job_id) if job_id else None,
    )
    if record["is_transcoding"]:
        enriched.update(transcoding_status=STATUS_PROCESSING, is_playable=False)
    elif record["transcoding_completed"]:
        enriched.update(transcoding_status=STATUS_COMPLETED, is_playable=True)
        if record["url"]:
            enriched["url"] = record["url"]
    else:
        enriched.update(transcoding_status=STATUS_PENDING, is_playable=True)
    return enriched


def enrich_media(items) -> list:
    """Return copies of `items` with playability fields; one query for all video items."""
    items = list(items or [])
    records = _lookup(_public_id(m) for m in items if _is_video(m))
    return [_overlay(m, records) for m in items]


def enrich_media_lists(media_lists) -> list:
    """Like enrich_media for several content items (a feed page) with a single query."""
    media_lists = [list(media or []) for media in media_lists]
    records = _lookup(_public_id(m) for media in media_lists for m in media if _is_video(m))
    return [[_overlay(m, records) for m in media] for media in media_lists]
