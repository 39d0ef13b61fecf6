#!/usr/bin/env python3
"""
Retry a failed meeting.

Processing is never resumed in place: the failed meeting's filename and
transcript are uploaded again as a new meeting, and the failed record is kept
for reference unless --delete-failed is given.
"""

import sys
import logging
from recall.core.exceptions import RecallError
from recall.db.database import init_db
from recall.db.queries import get_meeting, delete_meeting
from recall.models.meeting import ProcessingStatus
from recall.services.meeting_service import MeetingService

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger('recall-context.retry')

def retry_meeting(meeting_id, delete_failed=False, service=None):
    """
    Re-upload a FAILED meeting.

    Returns:
        int or None: id of the new meeting, None if nothing was retried
    """
    meeting = get_meeting(meeting_id)
    if not meeting:
        logger.error(f"Meeting {meeting_id} not found")
        return None

    status = meeting['processing_status']
    logger.info(f"Current status of meeting {meeting_id}: {status}")
    if status != ProcessingStatus.FAILED.value:
        logger.error(f"Only FAILED meetings can be retried (meeting {meeting_id} is {status})")
        return None

    service = service or MeetingService()
    try:
        result = service.upload_transcript(meeting['original_filename'], meeting['transcript_content'])
    except RecallError as e:
        logger.error(f"Retry of meeting {meeting_id} failed: {e}")
        return None

    logger.info(f"Meeting {meeting_id} reprocessed as meeting {result['id']}")
    if delete_failed:
        delete_meeting(meeting_id)
        logger.info(f"Deleted failed meeting {meeting_id}")
    return result['id']

if __name__ == "__main__":
    args = [a for a in sys.argv[1:] if a != "--delete-failed"]
    if len(args) != 1:
        print("Usage: python retry_processing.py <meeting_id> [--delete-failed]")
        sys.exit(1)

    init_db()
    new_id = retry_meeting(int(args[0]), delete_failed="--delete-failed" in sys.argv)
    if new_id is None:
        sys.exit(1)
