#!/usr/bin/env python3
"""
Simple script to run the server
Just run: python3 run_server.py
"""
import uvicorn

from examportal.core.database import init_db
from examportal.database.seed_data import seed_initial_data


if __name__ == "__main__":
    print("=" * 50)
    print("Starting Exam Portal Server...")
    print("=" * 50)
    print(f"Server will be available at: http://localhost:8000")
    print(f"API docs available at: http://localhost:8000/docs")
    print("=" * 50)
    print("Press CTRL+C to stop the server")
    print("=" * 50)

    init_db()
    seed_initial_data()

    uvicorn.run("examportal.main:app", host="0.0.0.0", port=8000, log_level="info")
