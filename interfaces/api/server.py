"""
API Interface - Redirect to main API
"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from dotenv import load_dotenv
load_dotenv()

# Import and run the main API
from api.main import app


def main(host: str = "0.0.0.0", port: int = 8000):
    import uvicorn
    print(f"[OK] Starting API server from api/main.py on port {port}")
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
