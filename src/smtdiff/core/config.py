import dataclasses
import json
import os
import pathlib
import typing

from .logging import getLogger

logger = getLogger(__name__)


def _get_default_home_dir() -> pathlib.Path:
    """Return the smtdiff home directory.

    ``$SMTDIFF_HOME`` wins when set; otherwise ``~/.smtdiff``.
    """
    home = os.environ.get("SMTDIFF_HOME")
    if home:
        return pathlib.Path(home)
    return pathlib.Path.home() / ".smtdiff"


DEFAULT_HOME_DIR = _get_default_home_dir()


@dataclasses.dataclass(frozen=True, slots=True)
class ConfigConstants:
    OPTIONS_FILENAME: typing.ClassVar[str] = "options.json"
    DEFAULT_SMT_TIMEOUT: typing.ClassVar[int] = 500

    @staticmethod
    def default_log_dir(home_dir: pathlib.Path | None = None) -> pathlib.Path:
        """Return the default log directory based on the home directory."""
        base = home_dir if home_dir is not None else DEFAULT_HOME_DIR
        return base / "logs"


@dataclasses.dataclass(frozen=True, slots=True)
class SmtOptions:
    """Options consumed by the SMT snippet comparator.

    Attributes:
        smt_timeout: Total SMT solving budget in whole seconds for one
            resynchronization. Zero or negative means unlimited.
        assert_outputs: Assert that at least one pair of matched snippet
            outputs differs. When disabled the query only contains the
            instruction encodings and the input equalities.
        dump_queries: Write every query in SMT-LIB form to the
            ``smtdiff.smt_queries`` logger.

    >>> SmtOptions().smt_timeout
    500
    >>> SmtOptions.from_dict({"smt_timeout": 0, "unknown": 1}).smt_timeout
    0
    """

    smt_timeout: int = ConfigConstants.DEFAULT_SMT_TIMEOUT
    assert_outputs: bool = True
    dump_queries: bool = False

    def to_dict(self) -> dict[str, typing.Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: typing.Mapping[str, typing.Any]) -> "SmtOptions":
        """Build options from a mapping, ignoring keys we do not know."""
        known = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


class SmtDiffConfiguration:
    """
    Manages application-wide configuration from a JSON file, offering
    dictionary-like access.

    >>> import tempfile
    >>> temp_dir = tempfile.TemporaryDirectory()
    >>> config_path = pathlib.Path(temp_dir.name) / "options.json"
    >>> config_path.write_text('{"smt_timeout": 30}')
    19
    >>> config = SmtDiffConfiguration(config_path)
    >>> config["smt_timeout"]
    30
    >>> config.smt_options().smt_timeout
    30
    >>> config["log_dir"] = "/new/logs"
    >>> str(config.log_dir)
    '/new/logs'
    >>> config.save()
    >>> json.loads(config_path.read_text())["log_dir"]
    '/new/logs'
    >>> temp_dir.cleanup()
    """

    def __init__(
        self,
        config_path: pathlib.Path | str | None = None,
        *,
        home_dir: pathlib.Path | str | None = None,
    ):
        """
        Initializes and loads the configuration.

        Args:
            config_path: Path to the JSON config file. If None, defaults to
                         'options.json' in the smtdiff home directory.
            home_dir: smtdiff home directory. If None, defaults to
                      $SMTDIFF_HOME or ~/.smtdiff.
        """
        self._home_dir = (
            pathlib.Path(home_dir) if home_dir is not None else DEFAULT_HOME_DIR
        )

        if config_path is not None:
            self.config_file = pathlib.Path(config_path)
        else:
            self.config_file = self._home_dir / ConfigConstants.OPTIONS_FILENAME

        self._options: dict[str, typing.Any] = {}
        self._load()

    def _load(self) -> None:
        """Loads configuration from the JSON file, handling potential errors."""
        try:
            with self.config_file.open("r", encoding="utf-8") as fp:
                self._options = json.load(fp)
            logger.info("Loaded configuration from %s", self.config_file)
        except FileNotFoundError:
            logger.debug("Configuration file %s not found", self.config_file)
            self._options = {}
        except json.JSONDecodeError:
            logger.error("Failed to parse config file: %s", self.config_file)
            logger.warning("No valid configuration found; using defaults in memory.")
            self._options = {}

    def save(self) -> None:
        """Saves the current configuration to the JSON file."""
        try:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            with self.config_file.open("w", encoding="utf-8") as fp:
                json.dump(self._options, fp, indent=2)
            logger.info("Configuration saved to %s", self.config_file)
        except IOError as e:
            logger.error("Failed to save configuration to %s: %s", self.config_file, e)

    def smt_options(self) -> SmtOptions:
        """Return the SMT comparator options stored in this configuration."""
        return SmtOptions.from_dict(self._options)

    @property
    def home_dir(self) -> pathlib.Path:
        return self._home_dir

    @property
    def log_dir(self) -> pathlib.Path:
        """Returns the configured log directory, or dynamically computes default if not set."""
        path_str = self._options.get("log_dir")
        if not path_str:
            path_str = str(ConfigConstants.default_log_dir(self._home_dir))
            self._options["log_dir"] = path_str
        return pathlib.Path(path_str)

    def __getitem__(self, name: str) -> typing.Any:
        """Provides dictionary-style read access."""
        return self._options[name]

    def __setitem__(self, name: str, value: typing.Any) -> None:
        """Provides dictionary-style write access."""
        self._options[name] = value

    def get(self, name: str, default: typing.Any = None) -> typing.Any:
        """Provides dictionary-style read access with a default value."""
        return self._options.get(name, default)

    def set(self, name: str, value: typing.Any) -> None:
        """Provides dictionary-style write access."""
        self._options[name] = value
