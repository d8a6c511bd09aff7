"""
Parser for the generation annotation

The annotation holds one entry per line in the form `KEY: GENERATOR` or
`KEY: GENERATOR:param=value,param=value`, for example:

    # database credentials
    PASSWORD: default
    TOKEN: hex:length=8
    PIN: digit:length=6

Blank lines and comments starting with `#` are skipped. Every problem in
the annotation is reported at once so it can be fixed in one edit.
"""
import re
from .errors import ParseError

KEY_PATTERN = re.compile(r"^[-._a-zA-Z0-9]+$")
PARAMETER_NAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


class GenerationEntry():
    """
    Single `KEY: GENERATOR` line of the annotation
    """

    def __init__(self, key, kind, params=None, lineno=None):
        self.key = key
        self.kind = kind
        self.params = dict(params or {})
        self.lineno = lineno

    def __eq__(self, other):
        if not isinstance(other, GenerationEntry):
            return NotImplemented
        return (self.key, self.kind, self.params) == (other.key, other.kind, other.params)

    def __repr__(self):
        return "GenerationEntry(key=%s, kind=%s, params=%s)" % (
            repr(self.key), repr(self.kind), repr(self.params))


class GenerationSpec():
    """
    Ordered entries of one annotation, keys are unique
    """

    def __init__(self, entries):
        self.entries = list(entries)

    def __iter__(self):
        return iter(self.entries)

    def __len__(self):
        return len(self.entries)

    def keys(self):
        return [entry.key for entry in self.entries]

    def __repr__(self):
        return "GenerationSpec(%s)" % ", ".join([repr(e) for e in self.entries])


def parse_generator(text):
    """
    Split `name` or `name:param=value,...` into (name, params, problems)
    """
    name, separator, rest = text.partition(":")
    name = name.strip()
    params, problems = {}, []
    if not name:
        problems.append("missing generator name")
    if not separator:
        return name, params, problems
    if not rest.strip():
        problems.append("empty parameter list after %s" % repr(name + ":"))
        return name, params, problems
    for item in rest.split(","):
        param, equals, value = item.partition("=")
        param = param.strip()
        if not equals:
            problems.append("malformed parameter %s, expected name=value" % repr(item.strip()))
        elif not PARAMETER_NAME_PATTERN.match(param):
            problems.append("malformed parameter name %s" % repr(param))
        elif param in params:
            problems.append("parameter %s given more than once" % repr(param))
        else:
            params[param] = value.strip()
    return name, params, problems


def parse(text, registry):
    """
    Parse annotation value into GenerationSpec

    Generator names and their parameters are checked against the registry
    so mistakes are caught before anything is generated. Raises ParseError
    listing every offending line.
    """
    entries, problems, seen = [], [], {}
    for lineno, line in enumerate(text.splitlines(), 1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        key, separator, generator = stripped.partition(":")
        if not separator:
            problems.append((lineno, "expected 'KEY: GENERATOR', got %s" % repr(stripped)))
            continue

        line_problems = []
        key = key.strip()
        if not key:
            line_problems.append("empty key")
        elif not KEY_PATTERN.match(key):
            line_problems.append("key %s may only contain alphanumerics, '-', '_' and '.'" % repr(key))
        elif key in seen:
            line_problems.append("duplicate key %s, first defined on line %d" % (repr(key), seen[key]))
        else:
            seen[key] = lineno

        kind, params, generator_problems = parse_generator(generator)
        line_problems += generator_problems
        if kind and kind not in registry:
            line_problems.append("unknown generator %s, expected one of %s" % (
                repr(kind), ", ".join(registry.names())))
        elif kind and not generator_problems:
            line_problems += ["%s: %s" % (kind, p) for p in registry.validate(kind, params)]

        if line_problems:
            problems += [(lineno, p) for p in line_problems]
        else:
            entries.append(GenerationEntry(key, kind, params, lineno))

    if problems:
        raise ParseError(problems)
    return GenerationSpec(entries)
