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

"""File collections over GridFS storage.

The :mod:`gridstore` package exposes GridFS (a ``<prefix>.files`` metadata
collection plus a ``<prefix>.chunks`` collection) as a file oriented
collection on top of :mod:`pymongo`.

.. seealso:: The MongoDB documentation on `gridfs <https://dochub.mongodb.org/core/gridfs>`_.
"""
from __future__ import annotations

from gridstore._version import __version__, get_version_string, version_tuple
from gridstore.collection import FileCollection
from gridstore.common import DEFAULT_CHUNK_SIZE, DEFAULT_PREFIX
from gridstore.cursor import FileCursor
from gridstore.database import FileDatabase
from gridstore.download import Download
from gridstore.errors import (
    CorruptGridFile,
    FileExists,
    GridStoreError,
    InvalidConfiguration,
    NoFile,
    UploadNotFound,
)
from gridstore.upload import Upload
from gridstore.uploads import UploadedFile, UploadRegistry

__all__ = [
    "__version__",
    "get_version_string",
    "version_tuple",
    "FileCollection",
    "FileDatabase",
    "FileCursor",
    "Upload",
    "Download",
    "UploadedFile",
    "UploadRegistry",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_PREFIX",
    "GridStoreError",
    "InvalidConfiguration",
    "NoFile",
    "UploadNotFound",
    "FileExists",
    "CorruptGridFile",
]
