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

"""Database level access to file collections."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from gridstore.collection import FileCollection
from gridstore.common import DEFAULT_PREFIX, validate_prefix, validate_string
from pymongo import MongoClient
from pymongo.errors import ConfigurationError

if TYPE_CHECKING:
    from gridstore.uploads import UploadRegistry
    from pymongo.database import Database


class FileDatabase:
    """Hands out :class:`~gridstore.collection.FileCollection` instances for
    one database, caching one per prefix.
    """

    def __init__(
        self,
        database: Database,
        chunk_size: Optional[int] = None,
        uploads: Optional[UploadRegistry] = None,
    ) -> None:
        """
        :param database: the database to store files in
        :param chunk_size: default chunk size for the file collections
        :param uploads: default upload registry for the file collections
        """
        self._database = database
        self._chunk_size = chunk_size
        self._uploads = uploads
        self._file_collections: dict[str, FileCollection] = {}

    @classmethod
    def from_uri(
        cls, uri: str, database: Optional[str] = None, **client_kwargs: Any
    ) -> FileDatabase:
        """Connect with a MongoDB connection string.

        The database is `database` if given, else the one named in the URI.
        Raises :class:`~pymongo.errors.ConfigurationError` when neither names
        one. Remaining keyword arguments go to
        :class:`~pymongo.mongo_client.MongoClient`.
        """
        validate_string("uri", uri)
        client: MongoClient = MongoClient(uri, **client_kwargs)
        if database is not None:
            return cls(client[validate_string("database", database)])
        try:
            return cls(client.get_default_database())
        except ConfigurationError:
            client.close()
            raise

    @property
    def database(self) -> Database:
        return self._database

    @property
    def name(self) -> str:
        return self._database.name

    def get_file_collection(
        self, prefix: str = DEFAULT_PREFIX, refresh: bool = False
    ) -> FileCollection:
        """Returns the file collection for `prefix`.

        :param prefix: root name of the file collection
        :param refresh: whether to create a new instance even if one is cached
        """
        prefix = validate_prefix("prefix", prefix)
        if refresh or prefix not in self._file_collections:
            self._file_collections[prefix] = FileCollection(
                self._database, prefix, chunk_size=self._chunk_size, uploads=self._uploads
            )
        return self._file_collections[prefix]

    def drop_collection(self, name: str) -> Any:
        return self._database.drop_collection(name)

    def __getitem__(self, prefix: str) -> FileCollection:
        return self.get_file_collection(prefix)

    def __repr__(self) -> str:
        return f"FileDatabase({self._database!r})"
