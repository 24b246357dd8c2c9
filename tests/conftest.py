"""Root pytest configuration for all tests.

This conftest applies to all test types (unit, integration).
"""

import logging

# Keep SQLAlchemy statement logging out of captured test output.
logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
