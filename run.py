#!/usr/bin/env python3
"""
Run script for the Cognitive Insight voice assessment service
"""
import uvicorn

from cognitive_insight.config.settings import settings
from cognitive_insight.main import app

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port)
