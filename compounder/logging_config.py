"""
Logging configuration for the compounder.

Every process that runs strategies writes three daily files next to the
console output:
- compounder.log: everything at the configured level, gzipped once stale
- compounder_errors.log: ERROR and above, for alerting
- compounder_activity.log: the deposit/withdraw/harvest/lifecycle trail
"""

import gzip
import logging
import shutil
import sys
import time
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

FILE_FORMAT = '%(asctime)s | %(levelname)-8s | %(component)-15s | %(message)s'
CONSOLE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'

SECONDS_PER_DAY = 86400


class GzipRotatingFileHandler(TimedRotatingFileHandler):
    """Daily rotation; backups older than `compress_after_days` are gzipped."""

    def __init__(self, *args, compress_after_days: int = 7, **kwargs):
        super().__init__(*args, **kwargs)
        self.compress_after_days = compress_after_days

    def doRollover(self):
        super().doRollover()
        for backup in self.stale_backups():
            self._gzip(backup)

    def stale_backups(self):
        base = Path(self.baseFilename)
        cutoff = time.time() - self.compress_after_days * SECONDS_PER_DAY
        stale = []
        for candidate in sorted(base.parent.glob(base.name + ".*")):
            if candidate.suffix == '.gz':
                continue
            try:
                if candidate.stat().st_mtime < cutoff:
                    stale.append(candidate)
            except OSError:
                # rotated away by another process
                continue
        return stale

    @staticmethod
    def _gzip(path: Path):
        target = path.with_name(path.name + '.gz')
        try:
            with path.open('rb') as src, gzip.open(target, 'wb') as dst:
                shutil.copyfileobj(src, dst)
        except OSError as e:
            # a handler cannot log about itself
            sys.stderr.write(f"log compression failed for {path}: {e}\n")
            target.unlink(missing_ok=True)
            return
        path.unlink()


class StructuredFormatter(logging.Formatter):
    """Adds `component` (last dotted part of the logger name) and appends
    any `extra_context` as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        record.component = record.name.rsplit('.', 1)[-1]
        line = super().format(record)
        context = getattr(record, 'extra_context', None)
        if not context:
            return line
        return line + " | " + " | ".join(f"{key}={value}" for key, value in context.items())


def _daily_file(path: Path, level: int, formatter: logging.Formatter, retention_days: int,
                compress_after_days: Optional[int] = None) -> logging.Handler:
    options = dict(filename=str(path), when='midnight', backupCount=retention_days, encoding='utf-8')
    if compress_after_days is None:
        handler = TimedRotatingFileHandler(**options)
    else:
        handler = GzipRotatingFileHandler(compress_after_days=compress_after_days, **options)
    handler.suffix = "%Y-%m-%d"
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    log_dir: str = "logs",
    log_level: str = "INFO",
    console_level: str = "INFO",
    enable_compression: bool = True,
    compress_after_days: int = 7,
    retention_days: int = 30,
) -> logging.Logger:
    """
    Replace the root logger's handlers with console and daily file output.

    Args:
        log_dir: Directory for the log files, created if missing
        log_level: Level for compounder.log
        console_level: Level for stdout
        enable_compression: Gzip stale backups of compounder.log
        compress_after_days: Age at which a backup counts as stale
        retention_days: Number of daily backups kept per file

    Returns:
        The root logger
    """
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)

    file_formatter = StructuredFormatter(fmt=FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(getattr(logging, console_level.upper()))
    console.setFormatter(StructuredFormatter(fmt=CONSOLE_FORMAT, datefmt='%H:%M:%S'))

    handlers = [
        console,
        _daily_file(
            directory / "compounder.log",
            getattr(logging, log_level.upper()),
            file_formatter,
            retention_days,
            compress_after_days if enable_compression else None,
        ),
        _daily_file(directory / "compounder_errors.log", logging.ERROR, file_formatter, retention_days),
        _daily_file(directory / "compounder_activity.log", logging.INFO, file_formatter, retention_days),
    ]

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)

    root.info(
        "Logging to %s (level %s, console %s, %d day retention, compression %s)",
        directory.absolute(),
        log_level,
        console_level,
        retention_days,
        f"after {compress_after_days} days" if enable_compression else "off",
    )
    return root


def log_with_context(logger: logging.Logger, level: int, message: str, **context):
    """Log `message`; keyword arguments travel as `extra_context`."""
    if context:
        logger.log(level, message, extra={'extra_context': context})
    else:
        logger.log(level, message)


class ActivityLogger:
    """
    Logger for strategy activity: one structured line per deposit,
    withdrawal, harvest, lifecycle change and keeper cycle.
    """

    def __init__(self, name: str = 'compounder.activity'):
        self.logger = logging.getLogger(name)

    def log_harvest(
        self,
        strategy: str,
        harvester: str,
        success: bool,
        want_harvested: int = 0,
        tvl: Optional[int] = None,
        call_fee: int = 0,
        error: Optional[str] = None,
    ):
        context = {'strategy': strategy, 'harvester': harvester, 'success': success}
        if success:
            context.update(want_harvested=want_harvested, tvl=tvl, call_fee=call_fee)
        if error:
            context['error'] = error

        level = logging.INFO if success else logging.ERROR
        message = f"Harvest {'succeeded' if success else 'failed'}: {strategy}"
        log_with_context(self.logger, level, message, **context)

    def log_deposit(self, strategy: str, amount: int, tvl: int):
        log_with_context(self.logger, logging.INFO, "Deposit", strategy=strategy, amount=amount, tvl=tvl)

    def log_withdraw(self, strategy: str, amount: int, fee: int, recipient: str, tvl: int):
        log_with_context(
            self.logger,
            logging.INFO,
            "Withdraw",
            strategy=strategy,
            amount=amount,
            fee=fee,
            recipient=recipient,
            tvl=tvl,
        )

    def log_lifecycle(self, strategy: str, action: str, caller: str, **context):
        """Pause, unpause, panic and retire are logged at WARNING."""
        log_with_context(
            self.logger,
            logging.WARNING,
            f"Lifecycle change: {action}",
            strategy=strategy,
            action=action,
            caller=caller,
            **context,
        )

    def log_keeper_cycle(self, harvested: int, skipped: int, failed: int, duration: float):
        log_with_context(
            self.logger,
            logging.INFO,
            "Keeper cycle completed",
            harvested=harvested,
            skipped=skipped,
            failed=failed,
            duration_seconds=f"{duration:.2f}",
        )

    def log_error(self, component: str, error_type: str, error_message: str, **context):
        context.update({'component': component, 'error_type': error_type})
        log_with_context(self.logger, logging.ERROR, error_message, **context)


_activity_logger: Optional[ActivityLogger] = None


def get_activity_logger() -> ActivityLogger:
    """Return the shared ActivityLogger instance."""
    global _activity_logger
    if _activity_logger is None:
        _activity_logger = ActivityLogger()
    return _activity_logger
