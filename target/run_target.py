# -------------------------
# Author: Jeevan Reji (modified)
# Date: 2026-10-19
# -------------------------
"""
Usage:
    python -m target.run_target 8080
    TARGET_PORT=8080 TARGET_CORPUS=input.json python -m target.run_target
"""
import uvicorn
import sys
import os


def main():
    # first positional arg wins, then TARGET_PORT, then 8080
    if len(sys.argv) > 1:
        try:
            port = int(sys.argv[1])
        except ValueError:
            raise RuntimeError("First argument must be the target port (e.g. 8080)")
    else:
        port = int(os.environ.get("TARGET_PORT", 8080))

    uvicorn.run("target.search_target:create_app", factory=True,
                host=os.environ.get("TARGET_HOST", "127.0.0.1"), port=port, reload=False)


if __name__ == "__main__":
    main()
