# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Email-send gateway microservice.

Features:
    - JSON HTTP endpoint to send a single plain-text email
    - SMTP relay delivery, or mock mode when no SMTP credentials are set
    - Per-client cooldown rate limiting on the send routes
    - In-process delivery statistics and Prometheus metrics
    - Health endpoint, Python client and ``mail-gateway`` CLI

Example::

    from mail_gateway.api import create_app
    from mail_gateway.config import load_settings
    from mail_gateway.state import AppState

    state = AppState.from_settings(load_settings())
    app = create_app(state)
"""

__version__ = "2.0.0"
