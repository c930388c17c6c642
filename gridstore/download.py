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

"""Reading files out of a file collection."""
from __future__ import annotations

import datetime
import io
import os
from collections import abc
from typing import TYPE_CHECKING, Any, BinaryIO, Iterator, Optional, Union

from gridstore.errors import CorruptGridFile, NoFile

if TYPE_CHECKING:
    from gridstore.collection import FileCollection
    from pymongo.cursor import Cursor


def _download_property(field_name: str, docstring: str, default: Any = None) -> Any:
    """Create a read-only Download property backed by the files document."""

    def getter(self: Download) -> Any:
        return self.document.get(field_name, default)

    docstring += "\n\nThis attribute is read-only."
    return property(getter, doc=docstring)


class Download:
    """Class to read one file out of a :class:`~gridstore.collection.FileCollection`.

    The files document is resolved on first use. Every export
    (:meth:`to_stream`, :meth:`to_file`, :meth:`to_bytes` or iteration) opens
    a fresh chunk cursor, so one download can be exported any number of
    times.
    """

    def __init__(self, collection: FileCollection, document: Any) -> None:
        """Read a file from a file collection.

        Application developers should generally not need to
        instantiate this class directly - instead see
        :meth:`~gridstore.collection.FileCollection.get` and
        :meth:`~gridstore.collection.FileCollection.create_download`.

        :param collection: the file collection to read from
        :param document: the files document itself, or the ``"_id"`` of the
            file to read
        """
        self._collection = collection
        self._document: Any = document
        self._resolved = isinstance(document, abc.Mapping)
        if self._resolved:
            self._document = dict(document)
        self._chunk_cursor: Optional[Cursor] = None

    @property
    def collection(self) -> FileCollection:
        return self._collection

    @property
    def document(self) -> dict[str, Any]:
        """The files document of this file.

        Raises :class:`~gridstore.errors.NoFile` if the download was created
        from an ``"_id"`` that does not exist.
        """
        if not self._resolved:
            document = self._collection.files.find_one({"_id": self._document})
            if document is None:
                raise NoFile(
                    "Document id=%r does not exist at collection %r"
                    % (self._document, self._collection.full_name)
                )
            self._document = dict(document)
            self._resolved = True
        return self._document

    @document.setter
    def document(self, document: Any) -> None:
        self._resolved = isinstance(document, abc.Mapping)
        self._document = dict(document) if self._resolved else document
        self._chunk_cursor = None

    file_id: Any = _download_property("_id", "The ``'_id'`` value for this file.")
    filename: Optional[str] = _download_property("filename", "Name of this file.")
    size: int = _download_property("length", "Length (in bytes) of this file.", default=0)
    length: int = _download_property("length", "Alias for `size`.", default=0)
    chunk_size: Optional[int] = _download_property("chunkSize", "Chunk size for this file.")
    upload_date: Optional[datetime.datetime] = _download_property(
        "uploadDate", "Date that this file was uploaded."
    )

    @property
    def metadata(self) -> dict[str, Any]:
        """Fields of the files document beyond the ones GridFS defines."""
        reserved = ("_id", "filename", "length", "chunkSize", "uploadDate", "md5")
        return {k: v for k, v in self.document.items() if k not in reserved}

    def _open_chunk_cursor(self) -> Cursor:
        chunks = self._collection.get_chunk_collection()
        return chunks.find({"files_id": self.document["_id"]}, sort=[("n", 1)])

    def get_chunk_cursor(self, refresh: bool = False) -> Cursor:
        """Cursor over this file's chunks, in ascending ``n`` order.

        The cursor is cached; pass ``refresh=True`` to open a new one.
        """
        if refresh or self._chunk_cursor is None:
            self._chunk_cursor = self._open_chunk_cursor()
        return self._chunk_cursor

    chunk_cursor = property(get_chunk_cursor, doc="Cached cursor over this file's chunks.")

    def _iter_chunks(self) -> Iterator[bytes]:
        next_chunk = 0
        for chunk in self.get_chunk_cursor(refresh=True):
            if chunk["n"] != next_chunk:
                raise CorruptGridFile(
                    "Missing chunk: expected chunk #%d but found "
                    "chunk with n=%d" % (next_chunk, chunk["n"])
                )
            next_chunk += 1
            yield bytes(chunk["data"])

    def __iter__(self) -> Iterator[bytes]:
        """Iterate over the data of this file, one chunk at a time."""
        return self._iter_chunks()

    def to_stream(self, stream: BinaryIO) -> int:
        """Write this file into a writable binary stream.

        Returns the number of bytes written.
        """
        written = 0
        for data in self._iter_chunks():
            stream.write(data)
            written += len(data)
        return written

    def to_file(self, path: Union[str, os.PathLike]) -> int:
        """Save this file to `path`, creating missing parent directories.

        Returns the number of bytes written.
        """
        path = os.fspath(path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "wb") as stream:
            return self.to_stream(stream)

    def to_bytes(self) -> bytes:
        """Return the whole content of this file.

        The content is held in memory; prefer :meth:`to_stream` for large files.
        """
        buf = io.BytesIO()
        self.to_stream(buf)
        return buf.getvalue()

    # Aliases kept for callers used to GridFS file objects.
    get_bytes = to_bytes
    read = to_bytes
    write = to_file

    def __repr__(self) -> str:
        if self._resolved:
            return f"Download(file_id={self._document.get('_id')!r}, filename={self._document.get('filename')!r})"
        return f"Download(file_id={self._document!r})"

