#!/usr/bin/env python3
"""
Test Generator Web API
Run this script to start the HTTP API on localhost:5000
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

REQUIRED_KEYS = {
    'ANTHROPIC_API_KEY': "Test generation and article extraction will not work.",
    'OPENAI_API_KEY': "Speech-to-text fallback for videos will not work.",
    'TRANSCRIPT_API_KEY': "The /api/transcript service will reject every request.",
}

for key, consequence in REQUIRED_KEYS.items():
    if not os.getenv(key):
        print(f"⚠️  Warning: {key} not found in environment.")
        print(f"   {consequence}")
    else:
        print(f"✅ {key} loaded successfully")
print()

Path('outputs/tests').mkdir(parents=True, exist_ok=True)

# Start the application
if __name__ == '__main__':
    port = int(os.getenv('PORT', '5000'))
    print("🚀 Starting Test Generator API...")
    print(f"📍 Listening on: http://localhost:{port}")
    print("🛑 Press Ctrl+C to stop the server")
    print()

    from app import app
    app.run(debug=False, host='0.0.0.0', port=port, threaded=True)
