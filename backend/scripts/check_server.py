"""Smoke-check a running Virtual School server.

Usage: python scripts/check_server.py [http://localhost:5000]

Calls /api/health and prints the result; exits non-zero if the server
is unreachable or unhealthy.
"""

import os
import sys

# Ensure backend folder is on sys.path so the package imports without installing
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from virtual_school.client.api import ApiClient, ApiError  # noqa: E402


def main(argv):
    server_url = argv[1] if len(argv) > 1 else os.getenv('SERVER_URL', 'http://localhost:5000')
    api = ApiClient.connect(server_url, timeout=10)
    try:
        body = api.health()
    except ApiError as e:
        print('FAILED:', e.message)
        return 1
    print('STATUS:', body.get('status'))
    print('JSON:', body)
    return 0 if body.get('status') == 'OK' else 1


if __name__ == '__main__':
    sys.exit(main(sys.argv))
