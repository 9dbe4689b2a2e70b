import logging
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def next_daily_number(db: Session, column, prefix: str, width: int = 4) -> str:
    """Next `<prefix><yymmdd><counter>` value for today.

    The counter restarts every day and follows the highest number already
    stored; the column's unique constraint rejects the loser of a race.
    """
    stem = f"{prefix}{datetime.utcnow().strftime('%y%m%d')}"
    latest = (
        db.query(column)
        .filter(column.like(f"{stem}%"))
        .order_by(func.length(column).desc(), column.desc())
        .first()
    )
    if latest is None or latest[0] is None:
        return f"{stem}{1:0{width}d}"

    try:
        latest_num = int(latest[0][len(stem):])
    except ValueError:
        logger.error(f"Invalid number format: {latest[0]} for prefix {stem}")
        latest_num = db.query(func.count()).filter(column.like(f"{stem}%")).scalar() or 0
    return f"{stem}{latest_num + 1:0{width}d}"
