"""Main module for the mcmanager API.

The API is split into a metadata client, an artifact fetcher, an installation pipeline
and the Microsoft credential chain. The command line interface in `mcmanager.cli` is
built on top of these modules and is a good example of how they fit together.
"""

LAUNCHER_NAME = "mcmanager"
LAUNCHER_VERSION = "1.0.0"
LAUNCHER_AUTHORS = ["mcmanager contributors"]
LAUNCHER_COPYRIGHT = "mcmanager  Copyright (C) 2026  mcmanager contributors"
LAUNCHER_URL = "https://github.com/mcmanager/mcmanager"
