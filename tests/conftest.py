import os

# Keep the web app's tab state store in memory during the test run.
os.environ.setdefault("FINPLAN_DATABASE_URL", "sqlite://")
