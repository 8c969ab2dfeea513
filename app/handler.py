"""
AWS Lambda entrypoint for the play count snapshot job

Event-driven handler triggered by EventBridge Scheduler.
No FastAPI or HTTP server logic - just direct job invocation.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from app.errors import PlayCountError
from app.jobs.play_count_snapshot import parse_days, run_snapshot_job

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def lambda_handler(event: Optional[Dict[str, Any]], context: Any) -> Dict[str, Any]:
    """
    AWS Lambda entrypoint for the snapshot job.

    Expected event payloads:
    - {}                 -> window length from the DAYS setting
    - {"days": 7}        -> explicit window length

    Args:
        event: Event payload from EventBridge or other AWS service
        context: Lambda context object

    Returns:
        Dictionary with statusCode and the job result or error
    """
    raw_days = (event or {}).get("days")
    logger.info(f"Lambda invoked with days: {raw_days}")

    try:
        days = parse_days(raw_days)
    except ValueError as e:
        logger.error(f"Invalid days in event: {e}")
        return {
            "statusCode": 400,
            "error": str(e),
        }

    try:
        result = asyncio.run(run_snapshot_job(days=days))
    except PlayCountError as e:
        logger.error(f"Lambda execution failed: {e}", exc_info=True)
        return {
            "statusCode": 500,
            "error": str(e),
        }

    logger.info(f"Snapshot job completed: {result.as_dict()}")
    return {
        "statusCode": 200,
        "result": result.as_dict(),
    }
