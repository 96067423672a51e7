# SPDX-FileCopyrightText: 2026 The fncounters Authors
# SPDX-License-Identifier: Apache-2.0

"""Run the counters service: ``python -m fncounters``."""

from __future__ import annotations

import os

import uvicorn

from fncounters.app import create_app


def main() -> None:
    port = int(os.getenv("PORT", "8080"))
    uvicorn.run(create_app(), host="0.0.0.0", port=port, log_config=None)


if __name__ == "__main__":
    main()
