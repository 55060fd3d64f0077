# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Input/Output operations for graphdrive.

This package holds the network-facing pieces: the single-request executor
and the resumable chunked upload engine.

Modules:

transport : module
    One HTTP round trip per call, with a shared-session factory.
upload : module
    Content-Range chunked upload driven by the server's next expected range.

Public API:

execute : function
    Issue one HTTP request and return its raw outcome.
make_session : function
    Create a requests.Session that never retries behind the caller.
upload_bytes : function
    Upload a payload to an existing upload session.
get_upload_status : function
    Read the next expected offset of an upload session.

Example:
    from graphdrive.io import upload_bytes

    result = upload_bytes(session.upload_url, payload, token)
    print(f"Uploaded to {result.web_url}")

"""

from .transport import HttpResponse, execute, make_session
from .upload import (
    DEFAULT_CHUNK_SIZE,
    UPLOAD_ALIGNMENT,
    chunk_ranges,
    get_upload_status,
    upload_bytes,
)

__all__ = [
    "HttpResponse",
    "execute",
    "make_session",
    "upload_bytes",
    "get_upload_status",
    "chunk_ranges",
    "DEFAULT_CHUNK_SIZE",
    "UPLOAD_ALIGNMENT",
]
