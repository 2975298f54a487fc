# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================
"""Conversions between dataclasses and the camelCase JSON the clients use."""

import re
from dataclasses import asdict
from enum import Enum
from typing import Any, Literal, Type, TypeVar

from dacite import Config, from_dict

T = TypeVar("T")

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

DACITE_CONFIG = Config(cast=[Enum], check_types=False)


def snake_to_camel(name: str) -> str:
    first, *rest = name.split("_")
    return first + "".join(part[:1].upper() + part[1:] for part in rest)


def camel_to_snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def convert_keys(
    data: Any, direction: Literal["snake_to_camel", "camel_to_snake"]
) -> Any:
    """Recursively renames dict keys. Enum values are flattened to plain values."""
    convert = snake_to_camel if direction == "snake_to_camel" else camel_to_snake
    if isinstance(data, dict):
        return {
            convert(key) if isinstance(key, str) else key: convert_keys(
                value, direction
            )
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [convert_keys(item, direction) for item in data]
    if isinstance(data, Enum):
        return data.value
    return data


def to_camel_dict(obj) -> dict:
    return convert_keys(asdict(obj), "snake_to_camel")


def from_camel_dict(data_class: Type[T], data: dict) -> T:
    return from_dict(
        data_class=data_class,
        data=convert_keys(data, "camel_to_snake"),
        config=DACITE_CONFIG,
    )
