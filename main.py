import logging
import os
import sys

# 1. CONFIGURATION (Before imports to ensure they take effect)
# -----------------------------------------------------------
# Keep OpenCV's own V4L2 chatter out of the PAM conversation
os.environ.setdefault("OPENCV_LOG_LEVEL", "ERROR")
os.environ.setdefault("OPENCV_VIDEOIO_DEBUG", "0")

# 2. IMPORT & EXECUTION
# -----------------------------------------------------------
try:
    from sayhi.app.cli import main

    if __name__ == "__main__":
        sys.exit(main())

except ImportError as e:
    logging.critical(f"ImportError: {e}", exc_info=True)
    sys.exit(1)
