#!/usr/bin/env python3
"""
List the most recent meetings in the database with their processing status.

Usage: python list_meetings.py [limit] [--status PENDING|PROCESSING|COMPLETED|FAILED]
"""

import sys
import logging
from recall.db.database import init_db
from recall.db.queries import list_meetings, get_meetings_by_status, get_processing_logs
from recall.models.meeting import ProcessingStatus

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger('recall-context.list-meetings')

def list_recent_meetings(limit=20, status=None):
    """Log the latest meetings, with the error and last log entry of failed ones"""
    init_db()
    if status:
        meetings = get_meetings_by_status(ProcessingStatus(status).value)[:limit]
    else:
        meetings = list_meetings(limit=limit, offset=0)

    if not meetings:
        logger.info("No meetings found in the database")
        return

    logger.info(f"Recent meetings: {len(meetings)}")

    for meeting in meetings:
        logger.info("---------------------------------------")
        logger.info(f"ID: {meeting['id']}")
        logger.info(f"File: {meeting['original_filename']}")
        logger.info(f"Type: {meeting['meeting_type']} / Series: {meeting['series_name']}")
        logger.info(f"Meeting date: {meeting['meeting_date']}")
        logger.info(f"Status: {meeting['processing_status']}")
        if meeting['processing_error']:
            logger.info(f"Error: {meeting['processing_error']}")
            logs = get_processing_logs(meeting['id'])
            if logs:
                logger.info(f"Last attempt: {logs[0]['operation']} {logs[0]['status']} at {logs[0]['created_at']}")

USAGE = "Usage: python list_meetings.py [limit] [--status PENDING|PROCESSING|COMPLETED|FAILED]"

def parse_args(argv):
    """Return (limit, status) from the command line, exiting with a usage message on bad input"""
    args = list(argv)
    status = None
    if "--status" in args:
        index = args.index("--status")
        if index + 1 >= len(args):
            print(USAGE)
            sys.exit(1)
        try:
            status = ProcessingStatus(args[index + 1].upper())
        except ValueError:
            valid = ", ".join(s.value for s in ProcessingStatus)
            print(f"Unknown status: {args[index + 1]}. Valid values: {valid}")
            sys.exit(1)
        args = args[:index] + args[index + 2:]
    try:
        limit = int(args[0]) if args else 20
    except ValueError:
        print(USAGE)
        sys.exit(1)
    return limit, status

if __name__ == "__main__":
    limit, status = parse_args(sys.argv[1:])
    list_recent_meetings(limit, status)
