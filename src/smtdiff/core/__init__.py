"""
smtdiff.core: infrastructure shared by the comparator components.

Modules:
    config  - SmtOptions and the JSON-backed SmtDiffConfiguration
    logging - SmtDiffLogger with MDC support, configure_loggers
    stats   - ComparisonStatistics tracking
"""

# Logging
from .logging import (
    SmtDiffLogger,
    getLogger,
    configure_loggers,
    LevelFlag,
)

# Configuration
from .config import (
    SmtDiffConfiguration,
    SmtOptions,
    ConfigConstants,
    DEFAULT_HOME_DIR,
)

# Statistics
from .stats import ComparisonStatistics


__all__ = [
    # logging
    "SmtDiffLogger",
    "getLogger",
    "configure_loggers",
    "LevelFlag",
    # config
    "SmtDiffConfiguration",
    "SmtOptions",
    "ConfigConstants",
    "DEFAULT_HOME_DIR",
    # stats
    "ComparisonStatistics",
]
