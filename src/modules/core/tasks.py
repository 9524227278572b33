"""Celery tasks for the core module."""

import structlog
from celery import shared_task
from django.conf import settings
from django.db import transaction

from modules.core.models import OutboxEvent
from shared.domain.events import DomainEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


@shared_task(name="core.relay_outbox_events")
def relay_outbox_events(batch_size=None):
    """Publish pending outbox rows to the in-process event bus.

    Rows are relayed oldest first.  Each row is locked and handled in its
    own transaction, so one failing handler marks only its row as failed
    and the batch carries on.
    """
    limit = batch_size or settings.OUTBOX_RELAY_BATCH_SIZE
    candidate_ids = list(OutboxEvent.objects.pending().values_list("id", flat=True)[:limit])

    published = failed = 0
    for event_id in candidate_ids:
        with transaction.atomic():
            row = (
                OutboxEvent.objects.select_for_update()
                .pending()
                .filter(id=event_id)
                .first()
            )
            if row is None:
                continue
            log = logger.bind(
                outbox_id=str(row.id),
                event_type=row.event_type,
                aggregate_id=row.aggregate_id,
            )
            try:
                event_class = DomainEvent.resolve(row.event_type)
                with transaction.atomic():
                    event_bus.publish(event_class.from_payload(row.payload))
            except Exception as exc:
                log.warning("outbox.relay_failed", error=str(exc))
                row.mark_as_failed(str(exc))
                failed += 1
                continue
            row.mark_as_published()
            published += 1
            log.info("outbox.relayed")

    logger.info("outbox.relay_completed", published=published, failed=failed)
    return {"published": published, "failed": failed}
