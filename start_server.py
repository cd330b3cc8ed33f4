#!/usr/bin/env python
"""Run the dashboard API locally with auto-reload.

Settings come from the environment and ``.env`` (see pivot_dashboard.core.config).
"""

import uvicorn

if __name__ == "__main__":
    uvicorn.run("pivot_dashboard.main:app", host="127.0.0.1", port=8080, reload=True)
