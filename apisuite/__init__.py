"""
API test suites package.

Kept importable to support:
  - IDE navigation
  - the programmatic runner (`run_tests.py`)
  - CI/CD module imports

All content is demo-safe and does not include production secrets.
"""
