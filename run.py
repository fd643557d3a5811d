# run.py

import uvicorn
import os

# Port from the environment, default 8000
port = int(os.environ.get("PORT", 8000))

if __name__ == "__main__":
    uvicorn.run(
        "portal.main:app",
        host="0.0.0.0",  # Important: Use 0.0.0.0 to accept connections from any IP
        port=port,
        reload=False
    )