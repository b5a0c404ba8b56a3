"""attendance-mailer: email attendance notices and monthly reports to parents."""

__version__ = "0.1.0"

import os

DEFAULT_REPORTS_DIR = os.path.join(os.getcwd(), "reports")
