"""Logging for smtdiff.

Loggers are :class:`SmtDiffLogger` instances. Records carry the snippet
being verified (from a per-thread mapped diagnostic context) and
:func:`configure_loggers` routes them to the console, ``smtdiff.log`` and,
for the raw SMT-LIB query dump, ``smt_queries.smt2``.
"""

import collections
import dataclasses
import functools
import logging
import logging.config
import pathlib
import threading
import typing

LOG_FILENAME = "smtdiff.log"
SMT_QUERIES_FILENAME = "smt_queries.smt2"

# Bumped whenever levels may have changed, so LevelFlag caches expire.
_config = collections.Counter(version=0)


@dataclasses.dataclass(slots=True)
class LevelFlag:
    """Cached ``isEnabledFor`` check for hot paths.

    The encoder and the solver test it once per instruction or query before
    building expensive debug messages (formulas, counterexamples)::

        if debug_on:
            logger.debug("Counterexample: %s", model)
    """

    _logger_name: str
    _level: int
    _last_version: int = dataclasses.field(default=-1, init=False)
    _cached: bool = dataclasses.field(default=False, init=False)

    def __bool__(self) -> bool:
        version = _config["version"]
        if self._last_version != version:
            self._cached = getLogger(self._logger_name).isEnabledFor(self._level)
            self._last_version = version
        return self._cached

    def __repr__(self):
        return f"<LevelFlag {self._logger_name}>={logging.getLevelName(self._level)}>"

    @staticmethod
    def bump_config_version() -> None:
        _config["version"] += 1


class SmtDiffLogger(logging.Logger):
    """Logger injecting the thread's diagnostic context into every record."""

    _mdc_local = threading.local()

    @classmethod
    def mdc(cls) -> dict[str, typing.Any]:
        mdc = getattr(cls._mdc_local, "mdc", None)
        if mdc is None:
            mdc = cls._mdc_local.mdc = {}
        return mdc

    @functools.cached_property
    def debug_on(self) -> LevelFlag:
        return LevelFlag(self.name, logging.DEBUG)

    @classmethod
    def get_mdc(cls, key: str, default: typing.Any = None) -> typing.Any:
        return cls.mdc().get(key, default)

    @classmethod
    def update_snippet(cls, snippet: str) -> None:
        """Tag the following records with the snippet under verification."""
        cls.mdc()["snippet"] = snippet

    @classmethod
    def reset_snippet(cls) -> None:
        cls.mdc().pop("snippet", None)

    def makeRecord(
        self,
        name,
        level,
        fn,
        lno,
        msg,
        args,
        exc_info,
        func=None,
        extra: dict[str, typing.Any] | None = None,
        sinfo=None,
    ):
        context = {"snippet": ""}
        context.update(self.mdc())
        if extra:
            context.update(extra)
        return super().makeRecord(
            name, level, fn, lno, msg, args, exc_info, func=func, extra=context, sinfo=sinfo
        )


class SmtDiffFormatter(logging.Formatter):
    """Renders a non-empty ``snippet`` as `` - <snippet>``."""

    def format(self, record: logging.LogRecord) -> str:
        snippet = getattr(record, "snippet", "")
        record.snippet = f" - {snippet}" if snippet and not snippet.startswith(" - ") else snippet
        return super().format(record)


# Handler file names are filled in by configure_loggers().
conf: dict[str, typing.Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "SmtDiffFormatter": {
            "()": SmtDiffFormatter,
            "format": "%(asctime)s - %(name)s - %(levelname)s%(snippet)s - %(message)s",
        },
        "rawFormatter": {
            "format": "%(message)s",
        },
    },
    "handlers": {
        "consoleHandler": {
            "class": "logging.StreamHandler",
            "level": "INFO",
            "formatter": "SmtDiffFormatter",
            "stream": "ext://sys.stdout",
        },
        "defaultFileHandler": {
            "class": "logging.FileHandler",
            "level": "DEBUG",
            "formatter": "SmtDiffFormatter",
            "filename": None,
        },
        "smtQueriesFileHandler": {
            "class": "logging.FileHandler",
            "level": "INFO",
            "formatter": "rawFormatter",
            "filename": None,
        },
    },
    "loggers": {
        "smtdiff": {
            "level": "INFO",
            "handlers": ["consoleHandler", "defaultFileHandler"],
            "propagate": False,
        },
        "smtdiff.comparator": {
            "level": "INFO",
            "handlers": ["defaultFileHandler"],
            "propagate": False,
        },
        "smtdiff.sync": {
            "level": "INFO",
            "handlers": ["defaultFileHandler"],
            "propagate": False,
        },
        "smtdiff.smt": {
            "level": "INFO",
            "handlers": ["defaultFileHandler"],
            "propagate": False,
        },
        "smtdiff.smt_queries": {
            "level": "INFO",
            "handlers": ["smtQueriesFileHandler"],
            "propagate": False,
        },
    },
    "root": {
        "level": "WARNING",
        "handlers": ["consoleHandler"],
    },
}


def configure_loggers(log_dir: str | pathlib.Path) -> None:
    """Apply :data:`conf` with the log files placed in *log_dir*."""
    log_dir = pathlib.Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    conf["handlers"]["defaultFileHandler"]["filename"] = (log_dir / LOG_FILENAME).as_posix()
    conf["handlers"]["smtQueriesFileHandler"]["filename"] = (
        log_dir / SMT_QUERIES_FILENAME
    ).as_posix()
    logging.config.dictConfig(conf)

    getLogger("smtdiff.smt_queries").info("; smtdiff snippet equivalence queries\n")
    LevelFlag.bump_config_version()


def getLogger(name: str, default_level: int = logging.INFO) -> SmtDiffLogger:
    """Return the :class:`SmtDiffLogger` registered under *name*.

    A plain logger already registered under the name is replaced by an
    :class:`SmtDiffLogger` that keeps its handlers, filters and level.
    """
    base = logging.getLogger(name)
    if isinstance(base, SmtDiffLogger):
        return base
    level = base.level if base.level >= default_level else default_level
    logger = SmtDiffLogger(base.name, level=level)
    logger.handlers = list(base.handlers)
    logger.filters = list(base.filters)
    logger.disabled = base.disabled
    logger.parent = base.parent
    # A logger without handlers must propagate or its records are lost.
    logger.propagate = base.propagate or not logger.handlers
    logging.Logger.manager.loggerDict[name] = logger
    return logger
