"""
Temp file service module.

MP3 conversions are written to TEMP_DIR and deleted after streaming; files
left behind by aborted downloads are removed here once they exceed
TEMP_FILE_MAX_AGE_MINUTES.
"""

import os
import time
import logging
from typing import Any, Dict, Optional

from app.config import TEMP_DIR, TEMP_FILE_MAX_AGE_MINUTES

logger = logging.getLogger(__name__)


def cleanup_temp_files(
    max_age_minutes: int = TEMP_FILE_MAX_AGE_MINUTES,
    temp_dir: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Delete scratch files older than `max_age_minutes`.

    Returns:
        Dictionary containing:
        - deleted: number of files deleted
        - freed_bytes: total disk space freed in bytes
        - errors: files that could not be removed

    Example:
        >>> result = cleanup_temp_files()
        >>> print(f"Deleted {result['deleted']} files, freed {result['freed_bytes']} bytes")
    """
    temp_dir = temp_dir or TEMP_DIR
    cutoff = time.time() - (max_age_minutes * 60)
    deleted = 0
    freed_bytes = 0
    errors = []

    if not os.path.exists(temp_dir):
        return {"deleted": 0, "freed_bytes": 0, "errors": []}

    for filename in os.listdir(temp_dir):
        filepath = os.path.join(temp_dir, filename)
        try:
            if os.path.isfile(filepath) and os.path.getmtime(filepath) < cutoff:
                size = os.path.getsize(filepath)
                os.remove(filepath)
                freed_bytes += size
                deleted += 1
        except OSError as e:
            # File may be mid-stream or already removed by its download
            logger.warning(f"Could not remove temp file {filepath}: {e}")
            errors.append(filename)

    if deleted:
        logger.info(f"Temp cleanup removed {deleted} files ({freed_bytes} bytes)")

    return {"deleted": deleted, "freed_bytes": freed_bytes, "errors": errors}
