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

"""Cursor over the files of a file collection."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from gridstore.download import Download

if TYPE_CHECKING:
    from gridstore.collection import FileCollection
    from pymongo.cursor import Cursor


class FileCursor:
    """A cursor / iterator for returning :class:`~gridstore.download.Download`
    objects as the result of a query against the files collection.
    """

    def __init__(self, collection: FileCollection, cursor: Cursor) -> None:
        """Wrap a driver cursor over ``<prefix>.files``.

        Should not be called directly by application developers - see
        :meth:`~gridstore.collection.FileCollection.find` instead.
        """
        self._collection = collection
        self._cursor = cursor

    @property
    def cursor(self) -> Cursor:
        """The wrapped driver cursor."""
        return self._cursor

    def __iter__(self) -> FileCursor:
        return self

    def next(self) -> Download:
        """Get next Download object from cursor."""
        document = next(self._cursor)
        return self._collection.create_download(document)

    __next__ = next

    def to_list(self, length: Optional[int] = None) -> list[Download]:
        """Convert the cursor to a list."""
        if length is None:
            return [x for x in self]  # noqa: C416,RUF100
        if length < 1:
            raise ValueError("to_list() length must be greater than 0")
        ret = []
        for _ in range(length):
            try:
                ret.append(self.next())
            except StopIteration:
                break
        return ret

    def close(self) -> None:
        """Explicitly close / kill this cursor."""
        self._cursor.close()

    def __enter__(self) -> FileCursor:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
