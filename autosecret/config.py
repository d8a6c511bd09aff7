"""
Process configuration

Settings come from built-in defaults, optionally overridden by a YAML file,
optionally overridden by command line flags.
"""
from strictyaml import Bool, Float, Int, Map, Optional, Str, StrictYAMLError, load
from .errors import AutoSecretError
from .generators import MAX_LENGTH


class ConfigurationError(AutoSecretError):
    """
    Configuration file or flags are unusable
    """


# (setting, file key, schema, default)
SETTINGS = [
    ("namespace", "namespace", Str(), None),
    ("resync_interval", "resyncInterval", Int(), 300),
    ("workers", "workers", Int(), 2),
    ("debounce", "debounce", Float(), 0.5),
    ("default_length", "defaultLength", Int(), 32),
    ("max_conflict_retries", "maxConflictRetries", Int(), 5),
    ("log_level", "logLevel", Str(), "info"),
    ("dry_run", "dryRun", Bool(), False),
]

SCHEMA = Map(dict([(Optional(key), schema) for _, key, schema, _ in SETTINGS]))

LOG_LEVELS = ("debug", "info", "warning", "error")


class Settings():
    def __init__(self, **kwargs):
        for name, _, _, default in SETTINGS:
            setattr(self, name, kwargs.pop(name, default))
        if kwargs:
            raise TypeError("Unknown settings: %s" % ", ".join(sorted(kwargs)))

    def validate(self):
        problems = []
        if self.resync_interval <= 0:
            problems.append("resync interval must be positive")
        if self.workers < 1:
            problems.append("at least one worker is required")
        if self.debounce < 0:
            problems.append("debounce must not be negative")
        if not 0 < self.default_length <= MAX_LENGTH:
            problems.append("default length must be between 1 and %d" % MAX_LENGTH)
        if self.max_conflict_retries < 1:
            problems.append("at least one write attempt is required")
        if self.log_level.lower() not in LOG_LEVELS:
            problems.append("log level must be one of %s" % ", ".join(LOG_LEVELS))
        if problems:
            raise ConfigurationError("; ".join(problems))
        return self

    def get_props(self):
        return [(name, getattr(self, name)) for name, _, _, _ in SETTINGS]

    def __repr__(self):
        return "Settings(%s)" % ", ".join(["%s=%s" % (k, repr(v)) for k, v in self.get_props()])


def read_config_file(path):
    """
    Read YAML configuration file, returns mapping of setting name to value
    """
    try:
        with open(path) as fh:
            document = load(fh.read(), SCHEMA, label=path)
    except OSError as e:
        raise ConfigurationError("Could not read %s: %s" % (path, e.strerror))
    except StrictYAMLError as e:
        raise ConfigurationError(str(e))
    values = document.data or {}
    return dict([(name, values[key]) for name, key, _, _ in SETTINGS if key in values])


def load_settings(args):
    """
    Merge defaults, configuration file and flags given on the command line

    Flags left unset on the command line are None in `args` and do not
    override the file.
    """
    values = {}
    if args.get("config"):
        values.update(read_config_file(args["config"]))
    for name, _, _, _ in SETTINGS:
        if args.get(name) is not None:
            values[name] = args[name]
    return Settings(**values).validate()
