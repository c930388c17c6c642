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

"""Writing files into a file collection."""
from __future__ import annotations

import datetime
import io
import os
from typing import TYPE_CHECKING, Any, BinaryIO, Mapping, NoReturn, Optional, Union

from bson.int64 import Int64
from bson.objectid import ObjectId
from gridstore.common import (
    validate_chunk_size,
    validate_is_mapping,
    validate_string,
)
from gridstore.errors import FileExists
from gridstore.logger import _FILE_LOGGER, _debug_log, _FileStatusMessage
from pymongo.errors import DuplicateKeyError, InvalidOperation

if TYPE_CHECKING:
    from gridstore.collection import FileCollection


class Upload:
    """Class to write one file into a :class:`~gridstore.collection.FileCollection`.

    Data added with :meth:`add_content`, :meth:`add_stream` or :meth:`add_file`
    is split into chunks of :attr:`chunk_size` bytes. Every full chunk is
    written as soon as it is available, one ``insert_one`` per chunk; the
    last, possibly short, chunk and the files document are written by
    :meth:`complete`.

    Application developers should generally not need to instantiate this
    class directly - instead see
    :meth:`~gridstore.collection.FileCollection.create_upload`.
    """

    def __init__(
        self,
        collection: FileCollection,
        filename: Optional[str] = None,
        chunk_size: Optional[int] = None,
        document: Optional[Mapping[str, Any]] = None,
        encoding: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        """Create a new upload.

        :param collection: the file collection to write to
        :param filename: human name for the file; defaults to the basename
            of the first path passed to :meth:`add_file`
        :param chunk_size: size of each chunk in bytes (default: the
            collection's chunk size, or 255 kb)
        :param document: additional fields to set on the files document. An
            ``"_id"`` given here is used as the file id.
        :param encoding: encoding used for :class:`str` data passed to
            :meth:`add_content`
        :param kwargs: ``"_id"`` or the ``"chunkSize"`` alias of `chunk_size`
        """
        if "chunkSize" in kwargs:
            chunk_size = kwargs.pop("chunkSize")
        file_id = kwargs.pop("_id", None)
        if kwargs:
            raise TypeError(f"Unknown upload options: {', '.join(sorted(kwargs))}")

        if document is None:
            document = {}
        validate_is_mapping("document", document)
        if chunk_size is None:
            chunk_size = collection.chunk_size
        if filename is not None:
            validate_string("filename", filename)

        if "_id" in document:
            file_id = document["_id"]
        if file_id is None:
            file_id = ObjectId()

        self._collection = collection
        self._chunks = collection.get_chunk_collection()
        self._id = file_id
        self._filename = filename
        self._chunk_size = validate_chunk_size("chunk_size", chunk_size)
        self._document = dict(document)
        self._encoding = encoding
        self._buffer = io.BytesIO()
        self._position = 0
        self._chunk_number = 0
        self._file: Optional[dict[str, Any]] = None
        self._closed = False

    @property
    def file_id(self) -> Any:
        """The ``"_id"`` value for this file."""
        return self._id

    @property
    def filename(self) -> Optional[str]:
        return self._filename

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def length(self) -> int:
        """Number of bytes added so far."""
        return self._position + self._buffer.tell()

    @property
    def closed(self) -> bool:
        """Whether :meth:`complete` or :meth:`cancel` has been called."""
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise InvalidOperation("cannot add data to a completed or cancelled upload")

    def add_content(self, data: Union[bytes, bytearray, memoryview, str]) -> Upload:
        """Add a buffer of bytes to the file.

        A :class:`str` is only accepted if an `encoding` was given.
        """
        self._check_open()
        if isinstance(data, str):
            if self._encoding is None:
                raise TypeError("must specify an encoding for file in order to write str")
            data = data.encode(self._encoding)
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"can only add bytes-like objects, not {type(data)}")
        return self.add_stream(io.BytesIO(data))

    def add_stream(self, stream: BinaryIO) -> Upload:
        """Add the remaining content of a readable binary stream to the file."""
        self._check_open()
        try:
            read = stream.read
        except AttributeError:
            raise TypeError("stream must be a file-like object with a read() method") from None

        # Short reads are not EOF; only an empty read ends the stream.
        while True:
            to_write = read(self._chunk_size - self._buffer.tell())
            if not to_write:
                return self
            self._buffer.write(to_write)
            if self._buffer.tell() == self._chunk_size:
                self._flush_buffer()

    def add_file(self, path: Union[str, os.PathLike]) -> Upload:
        """Add the content of the local file at `path`.

        The file's basename becomes the filename unless one was set.
        """
        self._check_open()
        path = os.fspath(path)
        if self._filename is None:
            self._filename = os.path.basename(path)
        with open(path, "rb") as stream:
            return self.add_stream(stream)

    def _flush_data(self, data: bytes) -> None:
        """Write `data` as the next chunk."""
        if self._chunk_number == 0:
            self._collection.ensure_indexes()
        assert len(data) <= self._chunk_size
        if data:
            try:
                self._chunks.insert_one(
                    {"files_id": self._id, "n": self._chunk_number, "data": data}
                )
            except DuplicateKeyError:
                self._raise_file_exists(self._id)
            self._chunk_number += 1
        self._position += len(data)

    def _flush_buffer(self) -> None:
        """Flush the buffer contents out to a chunk."""
        self._flush_data(self._buffer.getvalue())
        self._buffer.close()
        self._buffer = io.BytesIO()

    def _raise_file_exists(self, file_id: Any) -> NoReturn:
        raise FileExists("file with _id %r already exists" % (file_id,))

    def complete(self) -> dict[str, Any]:
        """Flush the remaining data and write the files document.

        Returns the files document, including its ``"_id"``. Calling
        :meth:`complete` more than once returns the same document.
        """
        if self._file is not None:
            return self._file
        self._check_open()

        self._flush_buffer()

        file: dict[str, Any] = {"_id": self._id}
        if self._filename is not None:
            file["filename"] = self._filename
        file.update(self._document)
        # length is stored as an Int64, as other GridFS drivers expect.
        file["_id"] = self._id
        file["length"] = Int64(self._position)
        file["chunkSize"] = self._chunk_size
        file["uploadDate"] = datetime.datetime.now(tz=datetime.timezone.utc)

        try:
            self._collection.files.insert_one(file)
        except DuplicateKeyError:
            self._raise_file_exists(self._id)

        self._file = file
        self._closed = True
        _debug_log(
            _FILE_LOGGER,
            message=_FileStatusMessage.UPLOADED,
            collection=self._collection.prefix,
            fileId=self._id,
            length=self._position,
            chunks=self._chunk_number,
        )
        return file

    def cancel(self) -> None:
        """Remove any chunks written so far and close the upload."""
        if self._file is not None:
            raise InvalidOperation("cannot cancel a completed upload")
        self._chunks.delete_many({"files_id": self._id})
        self._buffer = io.BytesIO()
        self._closed = True
        _debug_log(
            _FILE_LOGGER,
            message=_FileStatusMessage.UPLOAD_CANCELLED,
            collection=self._collection.prefix,
            fileId=self._id,
        )

    def __enter__(self) -> Upload:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> Any:
        """Complete the upload if no exceptions occur and allow exceptions to propagate."""
        if exc_type is None:
            self.complete()
        else:
            self._closed = True
        return False
