"""
Subscription Cron Job: Daily expiry of lapsed trials and subscriptions.

Accounts are also re-checked on every request, so this job only keeps the
stored status current for accounts that have not been used lately (admin
listings, reporting).

Typical cron schedule: 0 1 * * * (daily at 1 AM)
"""

import asyncio
import logging
import os
import traceback
from datetime import datetime, timezone
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..core.config import Settings
from ..core.database import build_engine
from ..services.users import AccountService

logger = logging.getLogger(__name__)


# =============================================================================
# ALERTING
# =============================================================================


async def send_alert(
    title: str,
    message: str,
    severity: str = "error",
    details: dict | None = None,
) -> None:
    """Log an alert and forward it to ``ALERT_WEBHOOK_URL`` when set."""
    log_message = f"[CRON ALERT] {title}: {message}"
    if details:
        log_message += f" | Details: {details}"

    if severity == "critical":
        logger.critical(log_message)
    else:
        logger.error(log_message)

    alert_webhook_url = os.getenv("ALERT_WEBHOOK_URL")
    if not alert_webhook_url:
        return

    payload = {
        "title": title,
        "message": message,
        "severity": severity,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "source": "policy-desk-cron",
        "details": details or {},
    }
    try:
        async with httpx.AsyncClient() as client:
            await client.post(alert_webhook_url, json=payload, timeout=10)
    except httpx.HTTPError as e:
        logger.error(f"Failed to send webhook alert: {e}")


async def run_subscription_job(
    database_url: str,
    dry_run: bool = False,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Main entry point for the subscription cron job.

    Marks every non-admin account whose trial or paid period has ended as
    expired, in one bulk update. With ``dry_run`` the update is rolled back
    and only the count is reported.

    Returns:
        Job result summary
    """
    start_time = datetime.now(timezone.utc)
    logger.info(f"Starting subscription job at {start_time.isoformat()}")

    engine = build_engine(Settings(database_url=database_url))
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    results: dict[str, Any] = {
        "started_at": start_time.isoformat(),
        "completed_at": None,
        "expired_count": 0,
        "dry_run": dry_run,
        "errors": [],
    }

    try:
        async with session_factory() as session:
            accounts = AccountService(session)
            results["expired_count"] = await accounts.expire_overdue_subscriptions(now)
            if dry_run:
                await session.rollback()
            else:
                await session.commit()

    except Exception as e:
        error_msg = f"Subscription job failed: {str(e)}"
        logger.error(error_msg)
        results["errors"].append(error_msg)

        await send_alert(
            title="Subscription Cron Job Failed",
            message="The daily subscription expiry job crashed unexpectedly.",
            severity="critical",
            details={
                "error": str(e),
                "traceback": traceback.format_exc()[-500:],
                "started_at": results["started_at"],
            },
        )
        raise

    finally:
        await engine.dispose()

    end_time = datetime.now(timezone.utc)
    results["completed_at"] = end_time.isoformat()
    results["duration_seconds"] = (end_time - start_time).total_seconds()

    logger.info(
        f"Subscription job completed in {results['duration_seconds']:.2f}s: "
        f"{results['expired_count']} accounts expired"
        + (" (dry run, rolled back)" if dry_run else "")
    )
    return results


# =============================================================================
# CLI ENTRY POINT
# =============================================================================


def main():
    """CLI entry point for the subscription job."""
    import argparse

    parser = argparse.ArgumentParser(description="Expire lapsed trials and subscriptions")
    parser.add_argument(
        "--database-url",
        default=os.environ.get("DATABASE_URL"),
        help="PostgreSQL connection string",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Count the accounts that would expire without changing them",
    )

    args = parser.parse_args()

    if not args.database_url:
        print("Error: DATABASE_URL is required")
        raise SystemExit(1)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        results = asyncio.run(run_subscription_job(
            database_url=args.database_url,
            dry_run=args.dry_run,
        ))
        print(f"Job completed: {results}")
    except Exception as e:
        print(f"Job failed: {e}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
