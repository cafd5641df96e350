# app.py
import os

from core import create_app

app = create_app()

# --- Run ---
if __name__ == "__main__":
    app.run(debug=os.environ.get("FLASK_DEBUG", "1") == "1")
