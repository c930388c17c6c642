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

"""File collection level operations."""
from __future__ import annotations

import os
from collections import abc
from typing import TYPE_CHECKING, Any, BinaryIO, Mapping, Optional, Union

from gridstore.common import (
    _C_INDEX,
    _F_INDEX,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_PREFIX,
    chunks_collection_name,
    files_collection_name,
    validate_chunk_size_or_none,
    validate_non_negative_integer,
    validate_prefix,
)
from gridstore.cursor import FileCursor
from gridstore.download import Download
from gridstore.errors import UploadNotFound
from gridstore.logger import _FILE_LOGGER, _debug_log, _FileStatusMessage
from gridstore.upload import Upload
from gridstore.uploads import UploadRegistry

if TYPE_CHECKING:
    from pymongo.collection import Collection
    from pymongo.database import Database


def _same_key(key: Mapping[str, Any], expected: Mapping[str, Any]) -> bool:
    # Field order is part of an index key.
    return list(key.items()) == list(expected.items())


class FileCollection:
    """A GridFS file collection: ``<prefix>.files`` plus ``<prefix>.chunks``.

    Operations that remove files cascade to their chunks. The cascade runs in
    the application, one file at a time, and is not atomic: a failure part
    way through can leave chunks without a files document.
    """

    def __init__(
        self,
        database: Database,
        prefix: str = DEFAULT_PREFIX,
        chunk_size: Optional[int] = None,
        uploads: Optional[UploadRegistry] = None,
    ) -> None:
        """Get a file collection.

        :param database: the database to store files in
        :param prefix: root name of the two collections (default: ``"fs"``)
        :param chunk_size: default chunk size, in bytes, of uploads created
            by this collection (default: 255 kb)
        :param uploads: registry consulted by :meth:`insert_uploads` when no
            registry is passed to it
        """
        chunk_size = validate_chunk_size_or_none("chunk_size", chunk_size)
        if uploads is not None and not isinstance(uploads, UploadRegistry):
            raise TypeError(f"uploads must be an instance of UploadRegistry, not {type(uploads)}")

        self._database = database
        self._chunk_size = chunk_size or DEFAULT_CHUNK_SIZE
        self._uploads = uploads
        self._chunk_collection: Optional[Collection] = None
        self._indexes_ensured = False
        self.prefix = prefix

    @property
    def database(self) -> Database:
        """The :class:`~pymongo.database.Database` this file collection lives in."""
        return self._database

    @property
    def prefix(self) -> str:
        """Prefix of this file collection."""
        return self._prefix

    @prefix.setter
    def prefix(self, prefix: str) -> None:
        self._prefix = validate_prefix("prefix", prefix)
        self._name = files_collection_name(self._prefix)
        self._files = self._database[self._name]
        self._chunk_collection = None

    @property
    def name(self) -> str:
        """The name of the files collection."""
        return self._name

    @property
    def full_name(self) -> str:
        """The full name of the files collection, ``<database>.<prefix>.files``."""
        return f"{self._database.name}.{self._name}"

    @property
    def files(self) -> Collection:
        """The files collection."""
        return self._files

    @property
    def chunk_size(self) -> int:
        """Default chunk size of uploads created by this collection."""
        return self._chunk_size

    @property
    def uploads(self) -> Optional[UploadRegistry]:
        return self._uploads

    @property
    def indexes_ensured(self) -> bool:
        """Whether :meth:`ensure_indexes` already ran for this instance."""
        return self._indexes_ensured

    def get_chunk_collection(self, refresh: bool = False) -> Collection:
        """Returns the collection holding the file chunks.

        :param refresh: whether to get a new collection instance even if one
            is cached
        """
        if refresh or self._chunk_collection is None:
            self._chunk_collection = self._database[chunks_collection_name(self._prefix)]
        return self._chunk_collection

    chunk_collection = property(get_chunk_collection, doc="The chunks collection.")

    def create_upload(self, **options: Any) -> Upload:
        """Create a new :class:`~gridstore.upload.Upload` writing to this collection.

        :param options: keyword arguments for
            :class:`~gridstore.upload.Upload`
        """
        return Upload(self, **options)

    def create_download(self, document: Any) -> Download:
        """Create a :class:`~gridstore.download.Download` for a files document
        or an ``"_id"``.
        """
        return Download(self, document)

    def drop(self) -> None:
        """Drop the files collection, then the chunks collection.

        The two drops are separate commands; if the second one fails the
        files collection is already gone.
        """
        self._database.drop_collection(self._name)
        self._database.drop_collection(self.get_chunk_collection().name)
        _debug_log(_FILE_LOGGER, message=_FileStatusMessage.DROPPED, collection=self._prefix)

    def find(
        self, filter: Optional[Mapping[str, Any]] = None, projection: Any = None, **kwargs: Any
    ) -> FileCursor:
        """Query the files collection.

        Returns a :class:`~gridstore.cursor.FileCursor` yielding one
        :class:`~gridstore.download.Download` per matching file. Any keyword
        arguments (``sort``, ``limit``, ``skip``, ...) are passed to
        :meth:`~pymongo.collection.Collection.find`.
        """
        return FileCursor(self, self._files.find(filter, projection, **kwargs))

    def find_one(self, filter: Optional[Any] = None, *args: Any, **kwargs: Any) -> Optional[Any]:
        """Get a single files document, or ``None``.

        `filter` may be a query document or any other value to be used as
        the ``"_id"`` to look for.
        """
        if filter is not None and not isinstance(filter, abc.Mapping):
            filter = {"_id": filter}
        return self._files.find_one(filter, *args, **kwargs)

    def count_documents(self, filter: Mapping[str, Any], **kwargs: Any) -> int:
        return self._files.count_documents(filter, **kwargs)

    def list_indexes(self) -> Any:
        return self._files.list_indexes()

    def create_index(self, keys: Any, **kwargs: Any) -> str:
        return self._files.create_index(keys, **kwargs)

    def remove(
        self, filter: Optional[Mapping[str, Any]] = None, limit: int = 0, **kwargs: Any
    ) -> int:
        """Remove files matching `filter`, together with their chunks.

        The ids of the matching files are collected first. Then, for each id,
        the files document is deleted followed by every chunk of that file.
        Returns the number of files documents deleted.

        :param filter: query selecting the files to remove (default: all)
        :param limit: maximum number of files to remove, ``0`` for no limit
        :param kwargs: other options for the query selecting the files, such
            as ``sort`` or ``skip``
        """
        if filter is None:
            filter = {}
        limit = validate_non_negative_integer("limit", limit)

        cursor = self._files.find(filter, {"_id": 1}, limit=limit, **kwargs)
        file_ids = [doc["_id"] for doc in cursor]

        chunks = self.get_chunk_collection()
        deleted_count = 0
        for file_id in file_ids:
            deleted_count += self._files.delete_one({"_id": file_id}).deleted_count
            chunks.delete_many({"files_id": file_id})

        _debug_log(
            _FILE_LOGGER,
            message=_FileStatusMessage.REMOVED,
            collection=self._prefix,
            filter=filter,
            deletedCount=deleted_count,
        )
        return deleted_count

    def insert_file(
        self,
        path: Union[str, os.PathLike],
        metadata: Optional[Mapping[str, Any]] = None,
        **options: Any,
    ) -> Any:
        """Store the local file at `path`.

        Fields of `metadata` are added to the files document. Returns the
        ``"_id"`` of the new file: a generated
        :class:`~bson.objectid.ObjectId` unless an ``"_id"`` was given in
        `metadata` or `options`.

        :param path: the local file to store
        :param metadata: other fields to include in the files document
        :param options: keyword arguments for
            :class:`~gridstore.upload.Upload`
        """
        return self.create_upload(document=metadata, **options).add_file(path).complete()["_id"]

    def insert_file_content(
        self, data: Any, metadata: Optional[Mapping[str, Any]] = None, **options: Any
    ) -> Any:
        """Store `data`, a bytes-like object, as a new file.

        See :meth:`insert_file` for `metadata`, `options` and the return value.
        """
        return self.create_upload(document=metadata, **options).add_content(data).complete()["_id"]

    def insert_stream(
        self, stream: BinaryIO, metadata: Optional[Mapping[str, Any]] = None, **options: Any
    ) -> Any:
        """Store the content of a readable binary stream as a new file.

        See :meth:`insert_file` for `metadata`, `options` and the return value.
        """
        return self.create_upload(document=metadata, **options).add_stream(stream).complete()["_id"]

    def insert_uploads(
        self,
        name: str,
        metadata: Optional[Mapping[str, Any]] = None,
        uploads: Optional[UploadRegistry] = None,
        **options: Any,
    ) -> Any:
        """Store a file received in an HTTP upload.

        Raises :class:`~gridstore.errors.UploadNotFound` if nothing was
        received for the form field `name`. The upload's original filename
        becomes the filename of the stored file.

        :param name: name of the form field the file was sent in
        :param metadata: other fields to include in the files document
        :param uploads: the uploads of the current request (default: the
            registry this collection was created with)
        :param options: keyword arguments for
            :class:`~gridstore.upload.Upload`
        """
        if uploads is None:
            uploads = self._uploads
        uploaded = uploads.get_instance_by_name(name) if uploads is not None else None
        if uploaded is None:
            raise UploadNotFound(f"Uploaded file '{name}' does not exist.")
        if uploaded.has_error:
            raise UploadNotFound(f"Uploaded file '{name}' was not received completely.")

        options["filename"] = uploaded.name
        upload = self.create_upload(document=metadata, **options)
        return upload.add_file(uploaded.temp_name).complete()["_id"]

    def get(self, file_id: Any) -> Optional[Download]:
        """Get a file by ``"_id"``.

        Returns a :class:`~gridstore.download.Download`, or ``None`` if no
        such file exists.
        """
        document = self._files.find_one({"_id": file_id})
        if document is None:
            return None
        return self.create_download(document)

    def exists(self, file_id: Any) -> bool:
        """Check if a file with ``"_id"`` `file_id` exists."""
        return self._files.find_one({"_id": file_id}, {"_id": 1}) is not None

    def delete(self, file_id: Any) -> bool:
        """Delete a file by ``"_id"``, together with its chunks.

        .. note:: Deletes of non-existent files are considered successful
           since the end result is the same: no file with that _id remains.
        """
        self.remove({"_id": file_id}, limit=1)
        return True

    def ensure_indexes(self, force: bool = False) -> FileCollection:
        """Make sure the indexes GridFS relies on exist.

        The check runs once per instance; pass ``force=True`` to run it
        again. Returns this collection.
        """
        if not force and self._indexes_ensured:
            return self

        self._ensure_file_indexes()
        self._ensure_chunk_indexes()

        self._indexes_ensured = True
        return self

    def _ensure_file_indexes(self) -> None:
        for index in self._files.list_indexes():
            if _same_key(index["key"], _F_INDEX):
                return
        self._create_index(self._files, _F_INDEX, unique=False)

    def _ensure_chunk_indexes(self) -> None:
        chunks = self.get_chunk_collection()
        for index in chunks.list_indexes():
            if index.get("unique") and _same_key(index["key"], _C_INDEX):
                return
        self._create_index(chunks, _C_INDEX, unique=True)

    def _create_index(self, collection: Collection, index_key: Mapping[str, Any], unique: bool) -> None:
        name = collection.create_index(list(index_key.items()), unique=unique)
        _debug_log(
            _FILE_LOGGER,
            message=_FileStatusMessage.INDEX_CREATED,
            collection=collection.name,
            indexName=name,
            unique=unique,
        )

    def __repr__(self) -> str:
        return f"FileCollection({self._database!r}, {self._prefix!r})"
