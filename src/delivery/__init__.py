"""Remote version-control automation client.

This package wraps authenticated GitHub REST operations and composes them
into a "ship a small change" workflow, providing:
- A uniform request executor that turns every API call into a Result
- Read-only resource queries (user, repositories, pull requests)
- Mutations (branch, file upsert, pull request, comment, merge)
- The feature-delivery saga (branch -> file -> pull request)
- A FastAPI adapter exposing the operations over HTTP
"""
