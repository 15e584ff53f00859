# main.py
from dotenv import load_dotenv
load_dotenv()

from fleetops.main import create_app

# -----------------------------
# App (uvicorn main:app)
# -----------------------------
app = create_app()
