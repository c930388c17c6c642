# Copyright 2024-present MongoDB, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Received HTTP uploads, keyed by the form field they arrived in.

A web layer fills one :class:`UploadRegistry` per request once the multipart
body has been spooled to temporary files, and hands it to
:meth:`~gridstore.collection.FileCollection.insert_uploads`.
"""
from __future__ import annotations

from typing import Any, Iterator, Mapping, Optional

from gridstore.common import validate_string


class UploadedFile:
    """A single received upload."""

    __slots__ = ("name", "temp_name", "type", "size", "error")

    def __init__(
        self,
        name: str,
        temp_name: str,
        type: Optional[str] = None,
        size: Optional[int] = None,
        error: int = 0,
    ) -> None:
        """
        :param name: original filename, as sent by the client
        :param temp_name: path of the temporary file holding the body
        :param type: mime-type declared by the client
        :param size: size of the upload in bytes
        :param error: non-zero when the web layer failed to receive the file
        """
        self.name = validate_string("name", name)
        self.temp_name = validate_string("temp_name", temp_name)
        self.type = type
        self.size = size
        self.error = error

    @property
    def has_error(self) -> bool:
        return bool(self.error)

    def __repr__(self) -> str:
        return f"UploadedFile({self.name!r}, {self.temp_name!r}, type={self.type!r}, size={self.size!r})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, UploadedFile):
            return (self.name, self.temp_name, self.type, self.size, self.error) == (
                other.name,
                other.temp_name,
                other.type,
                other.size,
                other.error,
            )
        return NotImplemented

    def __ne__(self, other: Any) -> bool:
        return not self == other


class UploadRegistry:
    """Maps form field names to the :class:`UploadedFile` received for them."""

    def __init__(self) -> None:
        self._uploads: dict[str, UploadedFile] = {}

    @classmethod
    def from_mapping(cls, uploads: Mapping[str, Any]) -> UploadRegistry:
        """Build a registry from ``{field: UploadedFile}`` or
        ``{field: {"name": ..., "temp_name": ...}}``.
        """
        registry = cls()
        for field, upload in uploads.items():
            if not isinstance(upload, UploadedFile):
                upload = UploadedFile(**upload)
            registry.add(field, upload)
        return registry

    def add(self, field: str, upload: UploadedFile) -> None:
        validate_string("field", field)
        if not isinstance(upload, UploadedFile):
            raise TypeError(f"upload must be an instance of UploadedFile, not {type(upload)}")
        self._uploads[field] = upload

    def get_instance_by_name(self, field: str) -> Optional[UploadedFile]:
        """Return the upload received for `field`, or ``None``."""
        return self._uploads.get(field)

    def clear(self) -> None:
        self._uploads.clear()

    def __contains__(self, field: object) -> bool:
        return field in self._uploads

    def __iter__(self) -> Iterator[str]:
        return iter(self._uploads)

    def __len__(self) -> int:
        return len(self._uploads)
