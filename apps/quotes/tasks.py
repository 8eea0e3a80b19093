"""Celery tasks for the quote domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from shared.domain.base import utcnow
from shared.domain.exceptions import QuoteNotFoundError

from .application.command_handlers import ExpireQuoteCommand, ExpireQuoteHandler, payment_window
from .repositories import DjangoQuoteRepository

logger = logging.getLogger(__name__)


@shared_task(name="quotes.expire_quote")
def expire_quote(quote_id: str) -> bool:
    """Expire one quote if its payment window has passed; True when it changed."""

    handler = ExpireQuoteHandler(DjangoQuoteRepository())
    try:
        expired = handler.handle(ExpireQuoteCommand(quote_id))
    except QuoteNotFoundError:
        logger.warning(f"Quote {quote_id} vanished before its expiry check")
        return False
    return expired is not None


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="quotes.expire_stale_quotes")
def expire_stale_quotes() -> dict[str, int]:
    """
    Expire QUOTED quotes whose 24h payment window has passed.

    The scanner already ignores their drivers once the window is over;
    this sweep makes the status say so and releases the driver.

    Runs every five minutes through Celery Beat.

    Returns:
        dict: {"expired": number of quotes moved to EXPIRED, "failed": errors}
    """
    repository = DjangoQuoteRepository()
    handler = ExpireQuoteHandler(repository)
    cutoff = utcnow() - payment_window()

    expired_count = 0
    failed_count = 0
    for quote_id in repository.find_stale_quoted_ids(cutoff):
        try:
            if handler.handle(ExpireQuoteCommand(quote_id)) is not None:
                expired_count += 1
        except Exception as e:
            failed_count += 1
            logger.error(f"Error expiring quote {quote_id}: {e}", exc_info=True)

    if expired_count > 0:
        logger.info(f"Expired {expired_count} quotes past their payment window")

    return {"expired": expired_count, "failed": failed_count}
