"""WSGI entry point for the net worth planner application."""

import os
import sys

from networth_planner import create_app

app = create_app()

if __name__ == "__main__":
    port = 5000

    # Hosting platforms pass the port through the environment
    if "PORT" in os.environ:
        port = int(os.environ["PORT"])

    if len(sys.argv) > 2 and sys.argv[1] == "--port":
        port = int(sys.argv[2])

    debug = os.environ.get("APP_ENV", "development") == "development"
    app.run(debug=debug, host="0.0.0.0", port=port)
