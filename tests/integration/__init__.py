"""Integration tests for the Redmine wiki migration.

These tests run the migration stages together against an in-memory Redmine
database and a temporary workspace. They bridge the gap between isolated
unit tests and a real migration run.

Test Coverage:
- Title space: hierarchical titles, revision chains, redirect pages
- Attachments: same-name disambiguation, file extraction
- Conversion: link resolution and invalid link reporting
- Dump: XML composition and the four CLI stages in sequence

Requirements:
- Write permissions to local filesystem (uses temp directories)

The external converter is replaced by an identity runner, so pandoc does not
need to be installed.
"""
