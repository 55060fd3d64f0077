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

"""Command-line interface for graphdrive.

This module provides the main CLI entry point for the graphdrive tool.

Commands:

    app-folder: Print the id of the application's special folder
    mkdir: Create a folder (in the app folder unless --parent is given)
    write: Create a small text file in the app folder
    upload: Upload a local file with a resumable upload session
    delta: Fetch changes since a sync token

Example:
    Upload and share a file:
        ```bash
        $ graphdrive upload photo.jpg --share
        ```

    Initial sync, then incremental sync:
        ```bash
        $ graphdrive delta
        $ graphdrive delta --from-token "aTE09NjM2..."
        ```

    Machine-readable delta output:
        ```bash
        $ graphdrive delta --json > changes.json
        ```

Exit Codes:

- 0: Success
- 1: Error (configuration, network, or malformed server response)

Note:
    The access token comes from --token, auth.access_token in the config
    file, or the GRAPHDRIVE_ACCESS_TOKEN environment variable (a .env file is
    honoured). Acquiring the token is outside this tool.
    The new delta token is printed, not stored; persist it yourself.
    Verbose mode shows full tracebacks on errors for debugging.

"""

from __future__ import annotations

import argparse
from dataclasses import asdict
import json
from pathlib import Path
import sys

from graphdrive import __version__
from graphdrive.config import load_config
from graphdrive.core import make_client, sync_changes, upload_file
from graphdrive.exceptions import GraphDriveError
from graphdrive.logging import get_logger, set_global_logger


def _configure(args: argparse.Namespace) -> dict:
    """Install the global logger and load configuration for a command."""
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)
    config_path = Path(args.config) if args.config else None
    return load_config(config_path, access_token=args.token)


def _report_error(err: Exception, args: argparse.Namespace) -> int:
    print(f"Error: {err}")
    if args.verbose or args.debug:
        import traceback

        traceback.print_exc()
    return 1


def cmd_app_folder(args: argparse.Namespace) -> int:
    """Handler for 'graphdrive app-folder' command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    try:
        config = _configure(args)
        client = make_client(config)
        try:
            folder_id = client.get_app_folder_id()
        finally:
            client.close()
    except GraphDriveError as err:
        return _report_error(err, args)

    print(f"App folder id: {folder_id}")
    return 0


def cmd_mkdir(args: argparse.Namespace) -> int:
    """Handler for 'graphdrive mkdir' command.

    Creates the folder under --parent, or under the app folder when no parent
    is given.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    try:
        config = _configure(args)
        client = make_client(config)
        try:
            parent_id = args.parent or client.get_app_folder_id()
            folder_id = client.create_folder(
                args.name, parent_id, config["upload"]["conflict_behavior"]
            )
        finally:
            client.close()
    except GraphDriveError as err:
        return _report_error(err, args)

    print(f"Created folder {args.name!r}: {folder_id}")
    return 0


def cmd_write(args: argparse.Namespace) -> int:
    """Handler for 'graphdrive write' command.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    try:
        config = _configure(args)
        client = make_client(config)
        try:
            web_url = client.create_text_file(args.name, args.text)
        finally:
            client.close()
    except GraphDriveError as err:
        return _report_error(err, args)

    print(f"Created {args.name}: {web_url}")
    return 0


def cmd_upload(args: argparse.Namespace) -> int:
    """Handler for 'graphdrive upload' command.

    Creates an upload session in the app folder, uploads the file chunk by
    chunk and optionally creates a sharing link.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    file_path = Path(args.file).resolve()
    if not file_path.is_file():
        print(f"Error: File not found: {file_path}")
        return 1

    try:
        config = _configure(args)
        print(f"Uploading: {file_path}")
        print()
        result = upload_file(
            file_path,
            config,
            remote_name=args.name,
            share=True if args.share else None,
        )
    except GraphDriveError as err:
        return _report_error(err, args)

    print("=" * 70)
    print("UPLOAD RESULTS")
    print("=" * 70)
    print(f"Web URL:         {result.web_url}")
    print(f"Item ID:         {result.remote_id or '(not reported)'}")
    print(f"Chunks Sent:     {result.chunks_sent}")
    if result.sharing_url:
        print(f"Sharing Link:    {result.sharing_url}")
    print("=" * 70)
    print()
    print("[SUCCESS] Upload complete!")
    return 0


def cmd_delta(args: argparse.Namespace) -> int:
    """Handler for 'graphdrive delta' command.

    Runs a delta sync from --from-token (or a full sync without it) and prints the
    changes and the new token.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    try:
        config = _configure(args)
        result = sync_changes(config, args.token_from)
    except GraphDriveError as err:
        return _report_error(err, args)

    if args.json:
        print(
            json.dumps(
                {
                    "sync_token": result.sync_token,
                    "changes": [asdict(change) for change in result.changes],
                },
                indent=2,
            )
        )
        return 0

    print("=" * 70)
    print("DELTA RESULTS")
    print("=" * 70)
    for change in result.changes:
        kind = "folder" if change.is_folder else "file"
        action = "deleted" if change.is_delete else "changed"
        print(
            f"{change.last_modified}  {action:<7}  {kind:<6}  "
            f"{change.name or '(no name)'}  [{change.id}]"
        )
    print("=" * 70)
    print(f"Changes:         {len(result.changes)}")
    print(f"Pages:           {result.pages_fetched}")
    print(f"Sync Token:      {result.sync_token}")
    print()
    print("[SUCCESS] Delta sync complete! Store the sync token for the next run.")
    return 0


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML config file (default: ./graphdrive.yaml if present)",
    )
    parser.add_argument(
        "--token",
        default=None,
        help="Access token (overrides config and GRAPHDRIVE_ACCESS_TOKEN)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress and high-level status updates",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show detailed debugging output (implies --verbose)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with every subcommand registered."""
    parser = argparse.ArgumentParser(
        prog="graphdrive",
        description="graphdrive - chunked upload and delta sync for cloud drives",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"graphdrive {__version__}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # 'app-folder' command
    parser_app = subparsers.add_parser(
        "app-folder",
        help="Print the app folder id",
        description="Look up the application's special folder and print its id.",
    )
    _add_common_arguments(parser_app)
    parser_app.set_defaults(func=cmd_app_folder)

    # 'mkdir' command
    parser_mkdir = subparsers.add_parser(
        "mkdir",
        help="Create a folder",
        description="Create a folder in the app folder or under --parent.",
    )
    parser_mkdir.add_argument("name", help="Name of the folder to create")
    parser_mkdir.add_argument(
        "--parent",
        default=None,
        help="Parent folder id (default: the app folder)",
    )
    _add_common_arguments(parser_mkdir)
    parser_mkdir.set_defaults(func=cmd_mkdir)

    # 'write' command
    parser_write = subparsers.add_parser(
        "write",
        help="Create a small text file in the app folder",
        description="Upload a short text file with a single request.",
    )
    parser_write.add_argument("name", help="File name in the app folder")
    parser_write.add_argument(
        "--text",
        default="This is a test text file",
        help="File content (default: a test sentence)",
    )
    _add_common_arguments(parser_write)
    parser_write.set_defaults(func=cmd_write)

    # 'upload' command
    parser_upload = subparsers.add_parser(
        "upload",
        help="Upload a file with a resumable upload session",
        description="Upload a local file into the app folder in 320 KiB-aligned chunks.",
    )
    parser_upload.add_argument("file", help="Local file to upload")
    parser_upload.add_argument(
        "--name",
        default=None,
        help="Name in the drive (default: local file name)",
    )
    parser_upload.add_argument(
        "--share",
        action="store_true",
        help="Create a sharing link after the upload",
    )
    _add_common_arguments(parser_upload)
    parser_upload.set_defaults(func=cmd_upload)

    # 'delta' command
    parser_delta = subparsers.add_parser(
        "delta",
        help="Fetch changes since a sync token",
        description="Walk the drive's change feed and print the changes and new sync token.",
    )
    parser_delta.add_argument(
        "--from-token",
        dest="token_from",
        default=None,
        help="Sync token from a previous run (default: full initial sync)",
    )
    parser_delta.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON",
    )
    _add_common_arguments(parser_delta)
    parser_delta.set_defaults(func=cmd_delta)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the graphdrive CLI.

    This function is registered as the 'graphdrive' console script in
    pyproject.toml.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
