"""Shared pytest fixtures and configuration for the ingresso-finder test suite.

Guidelines
----------
* No internet access in any test.
* ``requests`` is mocked at the infra boundary (a fake session object).
* Core tests must be pure — collaborators are ``MagicMock`` / fakes.
* Tests must not depend on OS state; files live under ``tmp_path``.
* Coroutines are driven with ``asyncio.run`` inside plain tests.
"""

from __future__ import annotations
