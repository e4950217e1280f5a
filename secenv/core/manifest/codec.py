"""Decoding of tagged unions from single-key mappings.

A tagged union is written as a mapping with exactly one key. The key
(matched case-insensitively) selects the variant and the value is the
variant's payload:

    {"file": "/keys/private.asc"}                  -> newtype payload
    {"gpg": {"fingerprint": "ABCD..."}}            -> struct payload
    {"none": null}                                 -> unit payload

Each sum type supplies a `TaggedUnion` table describing its variants;
the same decoding routine serves all of them.
"""

import dataclasses
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from secenv.core.manifest.exceptions import ConfigDecodeError

logger = logging.getLogger(__name__)

UNIT = "unit"
NEWTYPE = "newtype"
STRUCT = "struct"


def join_path(path: str, key: str) -> str:
    """Build a dotted path for error messages."""
    return f"{path}.{key}" if path else str(key)


def decode_payload(payload_type: Any, data: Any, path: str) -> Any:
    """
    Decode a payload according to its declared type.

    Args:
        payload_type: `str` or any object exposing `decode(data, path)`
        data: Raw value from the parsed manifest
        path: Dotted location of `data`, used in error messages

    Returns:
        Decoded value

    Raises:
        ConfigDecodeError: If the value doesn't match the type
    """
    if payload_type is str:
        if isinstance(data, bool) or data is None or isinstance(data, (dict, list)):
            raise ConfigDecodeError(
                f"expected a string, found {type(data).__name__}", path
            )
        # YAML turns bare numbers into int/float; treat them as text
        return data if isinstance(data, str) else str(data)

    return payload_type.decode(data, path)


@dataclasses.dataclass(frozen=True)
class Field:
    """A named field of a struct-shaped variant payload."""

    payload: Any
    optional: bool = False


@dataclasses.dataclass(frozen=True)
class Variant:
    """One entry of a tagged union's variant table."""

    name: str
    cls: type
    shape: str
    payload: Any = None
    fields: Optional[Mapping[str, Field]] = None

    @classmethod
    def unit(cls, name: str, target: type) -> "Variant":
        """Variant without payload."""
        if dataclasses.fields(target):
            raise TypeError(f"Unit variant '{name}' must not declare fields")
        return cls(name=name, cls=target, shape=UNIT)

    @classmethod
    def newtype(cls, name: str, target: type, payload: Any) -> "Variant":
        """Variant wrapping exactly one value; the payload decodes directly."""
        target_fields = dataclasses.fields(target)
        if len(target_fields) != 1:
            raise TypeError(
                f"Variant '{name}' wraps {len(target_fields)} values; "
                "only a single unnamed payload is supported"
            )
        return cls(name=name, cls=target, shape=NEWTYPE, payload=payload)

    @classmethod
    def struct(cls, name: str, target: type, fields: Mapping[str, Field]) -> "Variant":
        """Variant whose payload is a nested map of named fields."""
        declared = {f.name for f in dataclasses.fields(target)}
        missing = set(fields) ^ declared
        if missing:
            raise TypeError(
                f"Variant '{name}' field table doesn't match {target.__name__}: "
                f"{', '.join(sorted(missing))}"
            )
        return cls(name=name, cls=target, shape=STRUCT, fields=dict(fields))

    def decode(self, data: Any, path: str) -> Any:
        """Decode this variant's payload into an instance of `cls`."""
        if self.shape == UNIT:
            if data not in (None, {}):
                raise ConfigDecodeError(
                    f"variant `{self.name}` takes no value", path
                )
            return self._build(path)

        if self.shape == NEWTYPE:
            return self._build(path, decode_payload(self.payload, data, path))

        if not isinstance(data, Mapping):
            raise ConfigDecodeError(
                f"expected a map of fields for `{self.name}`, "
                f"found {type(data).__name__}",
                path,
            )

        values: Dict[str, Any] = {}
        for field_name, field in self.fields.items():
            raw = data.get(field_name)
            if raw is None:
                if not field.optional:
                    raise ConfigDecodeError(f"missing field `{field_name}`", path)
                values[field_name] = None
                continue
            values[field_name] = decode_payload(
                field.payload, raw, join_path(path, field_name)
            )

        unknown = [key for key in data if key not in self.fields]
        if unknown:
            logger.warning(
                f"Ignoring unknown field(s) at {path or '<root>'}: {', '.join(map(str, unknown))}"
            )

        return self._build(path, **values)

    def _build(self, path: str, *args: Any, **kwargs: Any) -> Any:
        try:
            return self.cls(*args, **kwargs)
        except ValueError as e:
            raise ConfigDecodeError(str(e), path) from e


class TaggedUnion:
    """
    Variant table for one sum type.

    Usage:
        ENCODED_VALUE = TaggedUnion("EncodedValue", [
            Variant.newtype("literal", LiteralValue, str),
            Variant.newtype("base64", Base64Value, str),
        ])
        value = ENCODED_VALUE.decode({"literal": "x"})
    """

    def __init__(self, name: str, variants: Sequence[Variant]):
        self.name = name
        self._variants: Dict[str, Variant] = {}
        for variant in variants:
            key = variant.name.lower()
            if key in self._variants:
                raise TypeError(f"Duplicate variant '{variant.name}' in {name}")
            self._variants[key] = variant

    @property
    def variant_names(self) -> List[str]:
        return list(self._variants)

    def decode(self, data: Any, path: str = "") -> Any:
        """
        Decode a single-key mapping into one of the union's variants.

        Args:
            data: Parsed manifest node
            path: Dotted location of the node, used in error messages

        Returns:
            Instance of the selected variant class

        Raises:
            ConfigDecodeError: If the node is not a single-key mapping or
                the key doesn't name a known variant
        """
        if not isinstance(data, Mapping):
            raise ConfigDecodeError(
                f"expected a map selecting a {self.name} variant, "
                f"found {type(data).__name__}",
                path,
            )
        if not data:
            raise ConfigDecodeError("expected a variant selector", path)
        if len(data) > 1:
            selectors = ", ".join(f"`{key}`" for key in data)
            raise ConfigDecodeError(
                f"expected exactly one variant selector, found {selectors}", path
            )

        selector, payload = next(iter(data.items()))
        variant = self._variants.get(str(selector).lower())
        if variant is None:
            expected = ", ".join(f"`{name}`" for name in self._variants)
            raise ConfigDecodeError(
                f"unknown variant `{selector}`, expected one of {expected}", path
            )

        return variant.decode(payload, join_path(path, str(selector).lower()))
