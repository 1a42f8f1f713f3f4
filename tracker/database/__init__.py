from .models import Base, Account, Post, ACCOUNT_TYPES, MEDIA_TYPES
from .connection import init_database, close_database, create_tables, get_session, is_initialized
from .record_store import RecordStore, normalize_username
