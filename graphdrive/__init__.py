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

"""graphdrive - cloud drive upload and delta sync client

A Python client for OneDrive-style cloud storage REST APIs (Microsoft Graph),
built around two protocols:

- Resumable chunked upload: Content-Range PUTs where the server's
  "next expected range" decides every following chunk
- Delta sync: paginated change feed stitched across ``@odata.nextLink`` pages
  and resumed from an opaque ``@delta.token``

Quick Start
-----------
Upload a file into the app folder:

    $ graphdrive upload photo.jpg --share

Fetch changes since a previous sync:

    $ graphdrive delta --from-token <saved token>

For full CLI documentation:

    $ graphdrive --help

Package Structure
-----------------
cli : module
    Command-line interface with argparse.
core : module
    Multi-step workflows (upload with sharing link, configured delta sync).
client : module
    DriveClient with one method per drive operation.
delta : module
    Delta sync engine.
models : module
    ChangeRecord and timestamp conversion.
io : package
    HTTP executor and chunked upload engine.
config : package
    YAML configuration loading and validation.

Public API
----------
    from graphdrive import DriveClient, sync_delta, upload_bytes
    from graphdrive.core import upload_file, sync_changes
    from graphdrive.config import load_config

Project Information
-------------------
License: Apache-2.0
"""

__version__ = "0.1.0"
__license__ = "Apache-2.0"
__description__ = "Cloud drive chunked upload and delta sync client"

# Re-export commonly used functions for convenience
from graphdrive.client import DriveClient
from graphdrive.config import load_config
from graphdrive.delta import sync_delta
from graphdrive.io import upload_bytes
from graphdrive.models import ChangeRecord
from graphdrive.results import DeltaResult, UploadResult, UploadSession

__all__ = [
    "__version__",
    "__license__",
    "__description__",
    "DriveClient",
    "load_config",
    "sync_delta",
    "upload_bytes",
    "ChangeRecord",
    "DeltaResult",
    "UploadResult",
    "UploadSession",
]
