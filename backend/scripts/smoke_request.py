"""Run a quick smoke request against the app.

Uses FastAPI's TestClient to hit `/health` and `/api` in-process, so no
server needs to be running.
"""

import sys
import os

# Ensure backend folder is on sys.path so `courseadmin` package can be imported
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from fastapi.testclient import TestClient
from courseadmin.main import app


def run_testclient():
    client = TestClient(app)
    for path in ('/health', '/api'):
        resp = client.get(path)
        print(path, 'STATUS:', resp.status_code)
        print(path, 'JSON:', resp.json())


if __name__ == '__main__':
    run_testclient()
