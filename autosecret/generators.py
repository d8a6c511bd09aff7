"""
Registry of value generators

Each generator turns a parameter mapping into a freshly drawn byte string.
Every random draw goes through the `secrets` module, generators keep no state
and never do I/O.
"""
import re
import secrets
import string
import uuid
from base64 import b64encode
from .errors import GeneratorError

MAX_LENGTH = 4096
LENGTH_PATTERN = re.compile(r"^[0-9]{1,6}$")

CHARACTER_CLASSES = {
    "upper": string.ascii_uppercase,
    "lower": string.ascii_lowercase,
    "digit": string.digits,
    "letter": string.ascii_letters,
    "symbol": string.punctuation,
    "whitespace": " ",
}


def parse_length(value):
    """
    Parse `length` parameter, returns (length, problem)
    """
    if not LENGTH_PATTERN.match(value):
        return None, "length must be a positive integer, got %s" % repr(value)
    length = int(value)
    if not 0 < length <= MAX_LENGTH:
        return None, "length must be between 1 and %d, got %d" % (MAX_LENGTH, length)
    return length, None


class Generator():
    """
    Base class for generators

    Subclasses list the parameter names they understand in `PARAMETERS`
    and implement `check` and `draw`.
    """
    PARAMETERS = ()

    def validate(self, params):
        """
        Return list of problems with the parameters, empty list if they are usable
        """
        problems = []
        for name in params:
            if name not in self.PARAMETERS:
                if self.PARAMETERS:
                    problems.append("unsupported parameter %s, expected one of %s" % (
                        repr(name), ", ".join(self.PARAMETERS)))
                else:
                    problems.append("unsupported parameter %s, generator takes no parameters" % repr(name))
        if not problems:
            problems += self.check(params)
        return problems

    def check(self, params):
        return []

    def generate(self, params):
        """
        Validate parameters and draw a new value
        """
        problems = self.validate(params)
        if problems:
            raise GeneratorError([(self.__class__.__name__, p) for p in problems])
        return self.draw(params)

    def draw(self, params):
        raise NotImplementedError("draw method required by Generator not implemented")


class CharsetGenerator(Generator):
    """
    Random string drawn uniformly from a character set

    Understands `length`, `charset` (literal characters replacing the
    default set) and `require` (`+` separated character classes that
    must appear at least once each).
    """
    PARAMETERS = ("length", "charset", "require")

    def __init__(self, alphabet, default_length=32):
        self.alphabet = alphabet
        self.default_length = default_length

    def _required_classes(self, params):
        if "require" not in params:
            return [], []
        required, problems = [], []
        for name in params["require"].split("+"):
            if name not in CHARACTER_CLASSES:
                problems.append("unknown character class %s in require, expected one of %s" % (
                    repr(name), ", ".join(CHARACTER_CLASSES)))
            elif name not in required:
                required.append(name)
        return required, problems

    def check(self, params):
        problems = []
        length = self.default_length
        if "length" in params:
            length, problem = parse_length(params["length"])
            if problem:
                problems.append(problem)
        if "charset" in params and not params["charset"]:
            problems.append("charset must not be empty")
        required, require_problems = self._required_classes(params)
        problems += require_problems
        if length is not None and len(required) > length:
            problems.append("length %d is too short to fit %d required character classes" % (
                length, len(required)))
        return problems

    def draw(self, params):
        length = int(params.get("length", self.default_length))
        required, _ = self._required_classes(params)
        alphabet = params.get("charset", self.alphabet)
        for name in required:
            alphabet += CHARACTER_CLASSES[name]
        # Collapse duplicates so every distinct character is equally likely
        alphabet = "".join(dict.fromkeys(alphabet))

        chars = [secrets.choice(CHARACTER_CLASSES[name]) for name in required]
        chars += [secrets.choice(alphabet) for j in range(length - len(chars))]
        secrets.SystemRandom().shuffle(chars)
        return "".join(chars).encode("utf-8")


class HexGenerator(Generator):
    """
    Secure random bytes in lowercase hex, `length` is the byte count before encoding
    """
    PARAMETERS = ("length",)

    def __init__(self, default_length=16):
        self.default_length = default_length

    def check(self, params):
        if "length" in params:
            _, problem = parse_length(params["length"])
            if problem:
                return [problem]
        return []

    def draw(self, params):
        return secrets.token_hex(int(params.get("length", self.default_length))).encode("ascii")


class Base64Generator(HexGenerator):
    """
    Secure random bytes in standard base64, `length` is the byte count before encoding
    """

    def __init__(self, default_length=32):
        super(Base64Generator, self).__init__(default_length)

    def draw(self, params):
        return b64encode(secrets.token_bytes(int(params.get("length", self.default_length))))


class UUIDGenerator(Generator):
    def draw(self, params):
        return str(uuid.uuid4()).encode("ascii")


class GeneratorRegistry():
    """
    Capability keyed collection of generators populated at start up
    """

    def __init__(self):
        self.generators = {}

    def register(self, name, generator):
        if name in self.generators:
            raise ValueError("Generator %s already registered" % repr(name))
        self.generators[name] = generator

    def __contains__(self, name):
        return name in self.generators

    def names(self):
        return sorted(self.generators)

    def validate(self, kind, params):
        return self.generators[kind].validate(params)

    def generate(self, kind, params):
        """
        Draw one value, raises GeneratorError for unknown kind or bad parameters
        """
        try:
            generator = self.generators[kind]
        except KeyError:
            raise GeneratorError([(kind, "unknown generator")])
        try:
            return generator.generate(params)
        except GeneratorError as e:
            raise GeneratorError([(kind, message) for _, message in e.problems])

    def generate_all(self, entries):
        """
        Draw values for all entries, all or nothing

        Problems of every entry are collected into single GeneratorError,
        no values are returned if any entry failed.
        """
        values, problems = {}, []
        for entry in entries:
            try:
                values[entry.key] = self.generate(entry.kind, entry.params)
            except GeneratorError as e:
                problems += [(entry.key, message) for _, message in e.problems]
        if problems:
            raise GeneratorError(problems)
        return values


def build_registry(default_length=32):
    """
    Build registry with the stock generators
    """
    alphanumeric = string.ascii_letters + string.digits
    registry = GeneratorRegistry()
    registry.register("default", CharsetGenerator(alphanumeric, default_length))
    registry.register("alphanumeric", CharsetGenerator(alphanumeric, default_length))
    registry.register("all", CharsetGenerator(alphanumeric + string.punctuation, default_length))
    for names, alphabet in ((("digit", "digits"), string.digits),
                            (("letter", "letters"), string.ascii_letters),
                            (("upper",), string.ascii_uppercase),
                            (("lower",), string.ascii_lowercase)):
        for name in names:
            registry.register(name, CharsetGenerator(alphabet, default_length))
    registry.register("hex", HexGenerator())
    registry.register("base64", Base64Generator())
    registry.register("uuid", UUIDGenerator())
    return registry
