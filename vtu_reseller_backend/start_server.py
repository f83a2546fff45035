#!/usr/bin/env python3
"""
Start the VTU Reseller Backend server
"""

import os
import sys

if __name__ == '__main__':
    # Fill catalog gaps from Reloadly before serving in development
    os.environ.setdefault('VAS_SYNC_ON_STARTUP', 'true')

    from app import app
    from config.environment import missing_credentials

    print("Starting VTU Reseller Backend...")
    missing = missing_credentials()
    if missing:
        print(f"⚠️  Missing credentials: {', '.join(missing)}")
    print("Server will be available at: http://localhost:5000")
    print("Press Ctrl+C to stop the server")

    try:
        app.run(debug=True, host='0.0.0.0', port=5000)
    except KeyboardInterrupt:
        print("\nServer stopped by user")
        sys.exit(0)
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
