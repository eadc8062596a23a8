# outcome_log.py
#
#   Append-only sink for auto RBU/CBU outcomes.
#   Every entry goes to the auto_rbu_cbu_log table and the "auto_rbu_and_cbu" logger.

import logging
from datetime import datetime, timezone

from src import db
from src.logging_config import OUTCOME_LOGGER_NAME
from src.models import OutcomeLogEntry

FAILED_PREFIX = "(FAILED) "

outcome_logger = logging.getLogger(OUTCOME_LOGGER_NAME)


class OutcomeLogger:
    def __init__(self, persist: bool = True):
        self.persist = persist

    def info(self, entry: OutcomeLogEntry):
        self._write(entry, logging.INFO)

    def error(self, entry: OutcomeLogEntry):
        self._write(entry, logging.ERROR)

    def _write(self, entry: OutcomeLogEntry, level: int):
        record = entry.to_dict()
        if record["logged_at"] is None:
            record["logged_at"] = datetime.now(timezone.utc).isoformat()

        outcome_logger.log(level, "%s", record)
        if self.persist:
            db.add_outcome_log(record)
