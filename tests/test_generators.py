"""Tests for the generator registry."""

import string
import uuid
from base64 import b64decode

import pytest

from autosecret.annotation import GenerationEntry
from autosecret.errors import GeneratorError
from autosecret.generators import (
    CharsetGenerator,
    Generator,
    GeneratorRegistry,
    build_registry,
    parse_length,
)

ALPHANUMERIC = set(string.ascii_letters + string.digits)


class TestParseLength:
    def test_valid(self):
        assert parse_length("8") == (8, None)

    @pytest.mark.parametrize("value", ["0", "4097", "-1", "eight", "", "\u00b2", "+8", " 8", "9" * 5000])
    def test_invalid(self, value):
        length, problem = parse_length(value)
        assert length is None
        assert problem


class TestStockGenerators:
    def test_default_is_32_alphanumerics(self, registry):
        value = registry.generate("default", {}).decode("utf-8")
        assert len(value) == 32
        assert set(value) <= ALPHANUMERIC

    def test_alphanumeric_with_length(self, registry):
        value = registry.generate("alphanumeric", {"length": "64"})
        assert len(value) == 64
        assert set(value.decode("utf-8")) <= ALPHANUMERIC

    def test_custom_charset(self, registry):
        value = registry.generate("default", {"charset": "ab", "length": "50"}).decode("utf-8")
        assert set(value) <= {"a", "b"}
        assert len(value) == 50

    def test_hex_length_is_byte_count(self, registry):
        value = registry.generate("hex", {"length": "8"}).decode("ascii")
        assert len(value) == 16
        assert set(value) <= set("0123456789abcdef")

    def test_hex_default(self, registry):
        assert len(registry.generate("hex", {})) == 32

    def test_base64(self, registry):
        value = registry.generate("base64", {"length": "12"})
        assert len(b64decode(value)) == 12

    def test_uuid_is_version_4(self, registry):
        value = registry.generate("uuid", {}).decode("ascii")
        assert uuid.UUID(value).version == 4
        assert str(uuid.UUID(value)) == value

    @pytest.mark.parametrize("kind,alphabet", [
        ("digit", string.digits),
        ("digits", string.digits),
        ("letter", string.ascii_letters),
        ("upper", string.ascii_uppercase),
        ("lower", string.ascii_lowercase),
    ])
    def test_single_class_presets(self, registry, kind, alphabet):
        value = registry.generate(kind, {"length": "40"}).decode("utf-8")
        assert set(value) <= set(alphabet)

    def test_all_includes_punctuation_charset(self, registry):
        value = registry.generate("all", {"length": "200"}).decode("utf-8")
        assert set(value) <= ALPHANUMERIC | set(string.punctuation)

    def test_require_classes_always_present(self, registry):
        for j in range(50):
            value = registry.generate("lower", {"length": "3", "require": "upper+digit"}).decode("utf-8")
            assert len(value) == 3
            assert set(value) & set(string.ascii_uppercase)
            assert set(value) & set(string.digits)

    def test_require_letter_on_digits(self, registry):
        for j in range(50):
            value = registry.generate("digit", {"length": "2", "require": "letter"}).decode("utf-8")
            assert set(value) & set(string.ascii_letters)

    def test_require_whitespace(self, registry):
        value = registry.generate("default", {"length": "4", "require": "whitespace"}).decode("utf-8")
        assert " " in value

    def test_draws_differ(self, registry):
        assert registry.generate("default", {}) != registry.generate("default", {})

    def test_default_length_is_configurable(self):
        registry = build_registry(default_length=12)
        assert len(registry.generate("default", {})) == 12
        assert len(registry.generate("hex", {})) == 32


class TestGeneratorErrors:
    def test_unknown_kind(self, registry):
        with pytest.raises(GeneratorError) as excinfo:
            registry.generate("bcrypt", {})
        assert excinfo.value.problems == [("bcrypt", "unknown generator")]

    def test_length_out_of_range(self, registry):
        with pytest.raises(GeneratorError):
            registry.generate("default", {"length": "0"})

    def test_unsupported_parameter(self, registry):
        with pytest.raises(GeneratorError) as excinfo:
            registry.generate("hex", {"charset": "abc"})
        assert "unsupported parameter 'charset'" in str(excinfo.value)

    def test_empty_charset(self, registry):
        assert registry.validate("default", {"charset": ""}) == ["charset must not be empty"]

    def test_require_longer_than_length(self, registry):
        problems = registry.validate("default", {"length": "1", "require": "upper+digit"})
        assert problems == ["length 1 is too short to fit 2 required character classes"]

    def test_unknown_require_class(self, registry):
        [problem] = registry.validate("default", {"require": "emoji"})
        assert "unknown character class 'emoji'" in problem

    def test_generator_used_directly_validates(self):
        with pytest.raises(GeneratorError):
            CharsetGenerator("abc").generate({"length": "x"})

    def test_problems_are_labelled_with_kind(self, registry):
        with pytest.raises(GeneratorError) as excinfo:
            registry.generate("hex", {"length": "0"})
        assert excinfo.value.problems == [("hex", "length must be between 1 and 4096, got 0")]


class BrokenGenerator(Generator):
    def draw(self, params):
        raise GeneratorError([("broken", "entropy source unavailable")])


class TestGenerateAll:
    def test_values_keyed_by_entry(self, registry):
        values = registry.generate_all([
            GenerationEntry("PASSWORD", "default"),
            GenerationEntry("TOKEN", "hex", {"length": "4"}),
        ])
        assert sorted(values) == ["PASSWORD", "TOKEN"]
        assert len(values["TOKEN"]) == 8

    def test_all_or_nothing(self, registry):
        registry.register("broken", BrokenGenerator())
        with pytest.raises(GeneratorError) as excinfo:
            registry.generate_all([
                GenerationEntry("PASSWORD", "default"),
                GenerationEntry("A", "broken"),
                GenerationEntry("B", "hex", {"length": "0"}),
            ])
        assert [key for key, _ in excinfo.value.problems] == ["A", "B"]
        assert "entropy source unavailable" in str(excinfo.value)


class TestRegistry:
    def test_register_twice_fails(self):
        registry = GeneratorRegistry()
        registry.register("x", CharsetGenerator("abc"))
        with pytest.raises(ValueError):
            registry.register("x", CharsetGenerator("abc"))

    def test_names(self, registry):
        assert {"default", "alphanumeric", "hex", "uuid"} <= set(registry.names())
        assert "uuid" in registry
