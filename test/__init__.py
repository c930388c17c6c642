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

"""Test suite for gridstore.
"""
from __future__ import annotations

import os
import unittest
from test.store_mocks import MockDatabase
from unittest import SkipTest

from gridstore import FileCollection
from pymongo import MongoClient
from pymongo.errors import ConnectionFailure

# The host and port of a single mongod or mongos used by IntegrationTest.
host = os.environ.get("DB_IP", "localhost")
port = int(os.environ.get("DB_PORT", 27017))


class MockStoreTest(unittest.TestCase):
    """Base class for TestCases running against an in-memory database."""

    db: MockDatabase
    fs: FileCollection

    def setUp(self):
        super().setUp()
        self.db = MockDatabase()
        self.fs = FileCollection(self.db)

    def chunks(self, file_id, prefix="fs"):
        """The chunk documents of `file_id`, ordered by ``n``."""
        docs = [c for c in self.db[f"{prefix}.chunks"].documents() if c["files_id"] == file_id]
        return sorted(docs, key=lambda c: c["n"])


class IntegrationTest(unittest.TestCase):
    """Base class for TestCases that need a connection to MongoDB to pass."""

    client: MongoClient

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        cls.client = MongoClient(host, port, serverSelectionTimeoutMS=1000)
        try:
            cls.client.admin.command("ping")
        except ConnectionFailure:
            cls.client.close()
            raise SkipTest(f"Cannot connect to MongoDB on {host}:{port}") from None
        cls.db = cls.client.gridstore_test

    @classmethod
    def tearDownClass(cls):
        cls.client.drop_database("gridstore_test")
        cls.client.close()
        super().tearDownClass()


__all__ = ["IntegrationTest", "MockStoreTest", "unittest"]
