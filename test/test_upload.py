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

"""Tests for the Upload class."""
from __future__ import annotations

import datetime
import os
import sys
import tempfile
from io import BytesIO

sys.path[0:0] = [""]

from test import MockStoreTest, unittest

from bson.int64 import Int64
from bson.objectid import ObjectId
from gridstore import DEFAULT_CHUNK_SIZE, FileCollection
from gridstore.errors import FileExists
from gridstore.upload import Upload
from pymongo.errors import ConfigurationError, InvalidOperation, OperationFailure


class TestUpload(MockStoreTest):
    def test_hello_world_chunks(self):
        file_id = self.fs.insert_file_content(b"hello world", {"filename": "a.txt"}, chunk_size=4)

        chunks = self.chunks(file_id)
        self.assertEqual([0, 1, 2], [c["n"] for c in chunks])
        self.assertEqual([b"hell", b"o wo", b"rld"], [c["data"] for c in chunks])

        file = self.db["fs.files"].find_one({"_id": file_id})
        self.assertEqual(11, file["length"])
        self.assertEqual("a.txt", file["filename"])
        self.assertEqual(4, file["chunkSize"])

    def test_lengths_and_sequence(self):
        for size, chunk_size in [(0, 3), (1, 1), (10, 5), (11, 5), (1000, 7), (4096, 1024)]:
            data = os.urandom(size)
            file_id = self.fs.insert_file_content(data, chunk_size=chunk_size)
            chunks = self.chunks(file_id)
            file = self.db["fs.files"].find_one({"_id": file_id})

            self.assertEqual(size, file["length"])
            self.assertEqual(size, sum(len(c["data"]) for c in chunks))
            self.assertEqual(list(range(len(chunks))), [c["n"] for c in chunks])
            self.assertEqual(-(-size // chunk_size), len(chunks))
            self.assertEqual(data, b"".join(c["data"] for c in chunks))

    def test_complete_returns_document(self):
        upload = self.fs.create_upload(filename="doc.bin", document={"owner": "alice"})
        document = upload.add_content(b"abc").complete()

        self.assertIsInstance(document["_id"], ObjectId)
        self.assertEqual("doc.bin", document["filename"])
        self.assertEqual("alice", document["owner"])
        self.assertIsInstance(document["length"], Int64)
        self.assertEqual(3, document["length"])
        self.assertEqual(DEFAULT_CHUNK_SIZE, document["chunkSize"])
        self.assertIsInstance(document["uploadDate"], datetime.datetime)
        self.assertIsNotNone(document["uploadDate"].tzinfo)
        self.assertEqual(document, self.db["fs.files"].find_one({"_id": document["_id"]}))

    def test_complete_is_idempotent(self):
        upload = self.fs.create_upload()
        first = upload.add_content(b"abc").complete()
        self.assertIs(first, upload.complete())
        self.assertEqual(1, self.db["fs.files"].count_documents({}))
        self.assertTrue(upload.closed)

    def test_explicit_id(self):
        self.assertEqual("foo", self.fs.insert_file_content(b"x", _id="foo"))
        self.assertEqual("bar", self.fs.insert_file_content(b"x", {"_id": "bar"}))
        self.assertEqual(1, len(self.chunks("foo")))
        self.assertEqual(1, len(self.chunks("bar")))

    def test_metadata_cannot_override_computed_fields(self):
        file_id = self.fs.insert_file_content(
            b"12345", {"length": 99, "chunkSize": 1, "color": "red"}, chunk_size=2
        )
        file = self.db["fs.files"].find_one({"_id": file_id})
        self.assertEqual(5, file["length"])
        self.assertEqual(2, file["chunkSize"])
        self.assertEqual("red", file["color"])

    def test_metadata_filename_overrides_option(self):
        file_id = self.fs.insert_file_content(b"x", {"filename": "meta.txt"}, filename="opt.txt")
        self.assertEqual("meta.txt", self.db["fs.files"].find_one({"_id": file_id})["filename"])

    def test_no_filename(self):
        file_id = self.fs.insert_file_content(b"x")
        self.assertNotIn("filename", self.db["fs.files"].find_one({"_id": file_id}))

    def test_empty_file(self):
        file_id = self.fs.insert_file_content(b"")
        self.assertEqual([], self.chunks(file_id))
        self.assertEqual(0, self.db["fs.files"].find_one({"_id": file_id})["length"])
        self.assertTrue(self.fs.indexes_ensured)

    def test_add_content_in_pieces(self):
        upload = self.fs.create_upload(chunk_size=4)
        for piece in [b"he", b"llo", b" ", b"wor", b"ld"]:
            upload.add_content(piece)
        self.assertEqual(11, upload.length)
        file_id = upload.complete()["_id"]

        self.assertEqual([b"hell", b"o wo", b"rld"], [c["data"] for c in self.chunks(file_id)])

    def test_full_chunks_are_written_before_complete(self):
        upload = self.fs.create_upload(chunk_size=4)
        upload.add_content(b"hello world")
        self.assertEqual(2, len(self.chunks(upload.file_id)))
        self.assertEqual(0, self.db["fs.files"].count_documents({}))
        upload.complete()
        self.assertEqual(3, len(self.chunks(upload.file_id)))

    def test_one_insert_per_chunk(self):
        self.fs.insert_file_content(b"a" * 10, chunk_size=3)
        self.assertEqual(4, self.db.calls[("fs.chunks", "insert_one")])
        self.assertEqual(1, self.db.calls[("fs.files", "insert_one")])

    def test_add_stream(self):
        file_id = self.fs.insert_stream(BytesIO(b"streamed content"), chunk_size=5)
        self.assertEqual(
            [b"strea", b"med c", b"onten", b"t"], [c["data"] for c in self.chunks(file_id)]
        )

    def test_add_stream_requires_read(self):
        self.assertRaises(TypeError, self.fs.create_upload().add_stream, b"bytes")

    def test_add_stream_short_reads(self):
        class TrickleStream(BytesIO):
            def read(self, size=-1):
                return super().read(min(3, size) if size >= 0 else 3)

        data = b"hello world, this is longer"
        file_id = self.fs.insert_stream(TrickleStream(data), chunk_size=8)
        self.assertEqual(len(data), self.db["fs.files"].find_one({"_id": file_id})["length"])
        self.assertEqual(
            [b"hello wo", b"rld, thi", b"s is lon", b"ger"],
            [c["data"] for c in self.chunks(file_id)],
        )
        self.assertEqual(data, self.fs.get(file_id).to_bytes())

    def test_add_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "report.pdf")
            with open(path, "wb") as f:
                f.write(b"%PDF-1.4 content")

            file_id = self.fs.insert_file(path, {"kind": "report"}, chunk_size=8)

        file = self.db["fs.files"].find_one({"_id": file_id})
        self.assertEqual("report.pdf", file["filename"])
        self.assertEqual("report", file["kind"])
        self.assertEqual(16, file["length"])
        self.assertEqual(2, len(self.chunks(file_id)))

    def test_add_file_keeps_given_filename(self):
        with tempfile.NamedTemporaryFile(delete=False) as f:
            f.write(b"data")
        self.addCleanup(os.remove, f.name)

        file_id = self.fs.insert_file(f.name, filename="given.txt")
        self.assertEqual("given.txt", self.db["fs.files"].find_one({"_id": file_id})["filename"])

    def test_add_missing_file(self):
        self.assertRaises(FileNotFoundError, self.fs.insert_file, "/no/such/file")
        self.assertEqual(0, self.db["fs.files"].count_documents({}))

    def test_str_requires_encoding(self):
        self.assertRaises(TypeError, self.fs.insert_file_content, "text")
        file_id = self.fs.insert_file_content("héllo", encoding="utf-8")
        self.assertEqual(
            "héllo".encode(), b"".join(c["data"] for c in self.chunks(file_id))
        )

    def test_rejects_non_bytes(self):
        self.assertRaises(TypeError, self.fs.insert_file_content, 42)

    def test_chunk_size_options(self):
        self.assertEqual(7, self.fs.create_upload(chunk_size=7).chunk_size)
        self.assertEqual(7, self.fs.create_upload(chunkSize=7).chunk_size)
        self.assertEqual(9, FileCollection(self.db, chunk_size=9).create_upload().chunk_size)
        self.assertRaises(ConfigurationError, self.fs.create_upload, chunk_size=0)
        self.assertRaises(ConfigurationError, self.fs.create_upload, chunk_size=-1)
        self.assertRaises(ConfigurationError, self.fs.create_upload, chunk_size=16 * 1024**2)
        self.assertRaises(TypeError, self.fs.create_upload, chunk_size=1.5)

    def test_unknown_option(self):
        self.assertRaises(TypeError, self.fs.create_upload, colour="red")

    def test_document_must_be_mapping(self):
        self.assertRaises(TypeError, self.fs.create_upload, document=["a"])

    def test_closed_upload_rejects_data(self):
        upload = self.fs.create_upload()
        upload.add_content(b"x").complete()
        self.assertRaises(InvalidOperation, upload.add_content, b"y")
        self.assertRaises(InvalidOperation, upload.add_stream, BytesIO(b"y"))
        self.assertRaises(InvalidOperation, upload.cancel)

    def test_cancel(self):
        upload = self.fs.create_upload(chunk_size=2)
        upload.add_content(b"abcdef")
        self.assertEqual(3, len(self.chunks(upload.file_id)))

        upload.cancel()
        self.assertTrue(upload.closed)
        self.assertEqual([], self.chunks(upload.file_id))
        self.assertEqual(0, self.db["fs.files"].count_documents({}))
        self.assertRaises(InvalidOperation, upload.complete)

    def test_context_manager(self):
        with self.fs.create_upload(chunk_size=3) as upload:
            upload.add_content(b"abcdefg")
        self.assertEqual(1, self.db["fs.files"].count_documents({"_id": upload.file_id}))

        try:
            with self.fs.create_upload(chunk_size=3) as failed:
                failed.add_content(b"abcd")
                raise ValueError
        except ValueError:
            pass
        self.assertTrue(failed.closed)
        self.assertEqual(0, self.db["fs.files"].count_documents({"_id": failed.file_id}))
        # No rollback; the full chunk stays behind.
        self.assertEqual(1, len(self.chunks(failed.file_id)))

    def test_file_exists(self):
        self.fs.insert_file_content(b"hello", _id="dup")
        self.assertRaises(FileExists, self.fs.insert_file_content, b"hello", _id="dup")

    def test_file_exists_on_files_document(self):
        self.db["fs.files"].insert_one({"_id": "taken", "length": 0})
        with self.assertRaises(FileExists):
            self.fs.insert_file_content(b"", _id="taken")

    def test_storage_failure_propagates(self):
        self.db.failures[("fs.chunks", "insert_one")] = OperationFailure("disk full")
        with self.assertRaisesRegex(OperationFailure, "disk full"):
            self.fs.insert_file_content(b"data")
        self.assertEqual(0, self.db["fs.files"].count_documents({}))

    def test_ensures_indexes_before_first_chunk(self):
        upload = Upload(self.fs, chunk_size=2)
        self.assertFalse(self.fs.indexes_ensured)
        upload.add_content(b"ab")
        self.assertTrue(self.fs.indexes_ensured)
        upload.complete()
        self.fs.insert_file_content(b"cd")
        self.assertEqual(1, self.db.calls[("fs.chunks", "create_index")])


if __name__ == "__main__":
    unittest.main()
