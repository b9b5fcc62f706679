# WSGI entry point for the fleet booking API

import sys
import os

# Add backend/ to path
project_path = os.path.dirname(os.path.abspath(__file__))
if project_path not in sys.path:
    sys.path.insert(0, project_path)

# Load environment variables from .env file if present
from dotenv import load_dotenv
env_path = os.path.join(project_path, '.env')
if os.path.exists(env_path):
    load_dotenv(env_path)

from fleetbook.main import create_app

application = create_app()
