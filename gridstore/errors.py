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

"""Exceptions raised by the :mod:`gridstore` package"""
from __future__ import annotations

from pymongo.errors import PyMongoError


class GridStoreError(PyMongoError):
    """Base class for all gridstore exceptions."""


class InvalidConfiguration(GridStoreError):
    """Raised when something a caller refers to by name or ``"_id"``
    is not there.
    """


class NoFile(InvalidConfiguration):
    """Raised when a download refers to a file document that does not exist."""


class UploadNotFound(InvalidConfiguration):
    """Raised when no upload was received under the requested form field name."""


class FileExists(GridStoreError):
    """Raised when trying to create a file that already exists."""


class CorruptGridFile(GridStoreError):
    """Raised when the chunks of a stored file are out of sequence."""
