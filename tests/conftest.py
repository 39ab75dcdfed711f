import os
import tempfile

# Loggers open their file handlers at import time
os.environ.setdefault("BEASTIE_LOG_DIR", tempfile.mkdtemp(prefix="beastie-logs-"))
