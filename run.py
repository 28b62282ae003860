#!/usr/bin/env python3
"""
Loan Tracker Entry Point

Starts the FastAPI server with the loan tracker API.
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from loan_tracker.api import run_server
from loan_tracker.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("Starting Loan Tracker...")
    print(f"Storage: {config.database_url}")
    print(f"API available at: http://localhost:{config.api_port}{config.api_prefix}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(debug=config.is_development)
    except KeyboardInterrupt:
        print("\nShutting down Loan Tracker...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
