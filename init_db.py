from docprep.config import Config
from docprep.db import Database

Database(Config.DATABASE_PATH).init_db()
print(f"✅ templates, signatories and annotations tables ready in {Config.DATABASE_PATH}")
