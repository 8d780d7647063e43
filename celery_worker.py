import os
from celery import Celery
from dotenv import load_dotenv

# --- CELERY WORKER INITIALIZATION ---

# Load environment variables before anything else reads them.
load_dotenv()

celery_app = Celery('tasks',
                    broker=os.environ.get('CELERY_BROKER_URL', 'redis://localhost:6379/0'),
                    include=['tasks'])  # Tasks live in tasks.py

celery_app.conf.update(
    task_track_started=True,
    task_ignore_result=True,
)
