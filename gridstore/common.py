# Copyright 2024-present MongoDB, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License"); you
# may not use this file except in compliance with the License.  You
# may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or
# implied.  See the License for the specific language governing
# permissions and limitations under the License.

"""Defaults and option validation shared by the gridstore modules."""
from __future__ import annotations

from typing import Any, Mapping, Optional

from pymongo import ASCENDING
from pymongo.errors import ConfigurationError

# Default root collection name, as used by every GridFS speaking tool.
DEFAULT_PREFIX = "fs"

"""Default chunk size, in bytes."""
# Slightly under a power of 2, to work well with server's record allocations.
DEFAULT_CHUNK_SIZE = 255 * 1024

# Chunks are single BSON documents, so a chunk must stay well below 16MB.
MAX_CHUNK_SIZE = 15 * (1024**2)

FILES_SUFFIX = "files"
CHUNKS_SUFFIX = "chunks"

_F_INDEX: dict[str, Any] = {"filename": ASCENDING, "uploadDate": ASCENDING}
_C_INDEX: dict[str, Any] = {"files_id": ASCENDING, "n": ASCENDING}


def validate_string(option: str, value: Any) -> str:
    """Validates that 'value' is an instance of `str`."""
    if isinstance(value, str):
        return value
    raise TypeError(f"Wrong type for {option}, value must be an instance of str, not {type(value)}")


def validate_prefix(option: str, value: Any) -> str:
    """Validates a file collection prefix.

    The prefix becomes the first part of two collection names, so it must be
    a non-empty string which does not start or end with a dot and carries no
    characters MongoDB rejects in collection names.
    """
    value = validate_string(option, value)
    if not value:
        raise ConfigurationError(f"The value of {option} must not be empty")
    if value.startswith(".") or value.endswith("."):
        raise ConfigurationError(f"The value of {option} must not start or end with '.'")
    if "$" in value or "\x00" in value:
        raise ConfigurationError(f"The value of {option} must not contain '$' or null characters")
    return value


def validate_integer(option: str, value: Any) -> int:
    """Validates that 'value' is an integer (or str representation)."""
    if isinstance(value, bool):
        raise TypeError(f"Wrong type for {option}, value must be an integer, not {type(value)}")
    if isinstance(value, int):
        return value
    elif isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            raise ConfigurationError(f"The value of {option} must be an integer") from None
    raise TypeError(f"Wrong type for {option}, value must be an integer, not {type(value)}")


def validate_positive_integer(option: str, value: Any) -> int:
    """Validate that 'value' is a positive integer, which does not include 0."""
    val = validate_integer(option, value)
    if val <= 0:
        raise ConfigurationError(f"The value of {option} must be a positive integer")
    return val


def validate_non_negative_integer(option: str, value: Any) -> int:
    """Validate that 'value' is a positive integer or 0."""
    val = validate_integer(option, value)
    if val < 0:
        raise ConfigurationError(f"The value of {option} must be a non negative integer")
    return val


def validate_chunk_size(option: str, value: Any) -> int:
    val = validate_positive_integer(option, value)
    if val > MAX_CHUNK_SIZE:
        raise ConfigurationError(f"The value of {option} must not exceed {MAX_CHUNK_SIZE} bytes")
    return val


def validate_chunk_size_or_none(option: str, value: Any) -> Optional[int]:
    if value is None:
        return value
    return validate_chunk_size(option, value)


def validate_is_mapping(option: str, value: Any) -> Mapping[str, Any]:
    """Validate the type of method arguments that expect a document."""
    if not isinstance(value, Mapping):
        raise TypeError(
            f"{option} must be an instance of dict, bson.son.SON, or "
            f"any other type that inherits from collections.Mapping, not {type(value)}"
        )
    return value


def files_collection_name(prefix: str) -> str:
    return f"{prefix}.{FILES_SUFFIX}"


def chunks_collection_name(prefix: str) -> str:
    return f"{prefix}.{CHUNKS_SUFFIX}"
