import sqlite3

from .config import settings
from .logging_config import get_logger

logger = get_logger(__name__)

# Tests and callers may point this at another file before opening connections.
DATABASE_FILE = settings.db_file


def get_db_connection() -> sqlite3.Connection:
    """Open a connection to the SQLite database with dict-like rows and FK enforcement."""
    conn = sqlite3.connect(DATABASE_FILE)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def create_tables() -> None:
    """Create the required tables and indexes when they do not exist yet."""
    conn = get_db_connection()
    cursor = conn.cursor()
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT UNIQUE NOT NULL,
            password TEXT NOT NULL,
            email_verified INTEGER DEFAULT 0,
            verification_token TEXT,
            verification_token_expires TEXT,
            role TEXT DEFAULT 'USER',
            createdAt TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updatedAt TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS books (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            isbn TEXT UNIQUE,
            publishYear INTEGER,
            author TEXT,
            cover TEXT,
            description TEXT,
            createdAt TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updatedAt TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS user_collections (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            userId INTEGER NOT NULL,
            bookId INTEGER NOT NULL,
            createdAt TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (userId) REFERENCES users(id) ON DELETE CASCADE,
            FOREIGN KEY (bookId) REFERENCES books(id) ON DELETE CASCADE,
            UNIQUE(userId, bookId)
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS reset_tokens (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            userId INTEGER NOT NULL,
            token TEXT NOT NULL,
            expiresAt TEXT NOT NULL,
            createdAt TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (userId) REFERENCES users(id) ON DELETE CASCADE
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS authors (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            biography TEXT,
            birth_date TEXT,
            photo_url TEXT,
            createdAt TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updatedAt TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # Many-to-many link between books and authors
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS author_books (
            author_id INTEGER NOT NULL,
            book_id INTEGER NOT NULL,
            is_primary INTEGER DEFAULT 0,
            createdAt TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (author_id, book_id),
            FOREIGN KEY (author_id) REFERENCES authors(id) ON DELETE CASCADE,
            FOREIGN KEY (book_id) REFERENCES books(id) ON DELETE CASCADE
        )
    """)

    # Ratings and comments; userId is nulled when the account goes away
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS reviews (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            bookId INTEGER NOT NULL,
            userId INTEGER,
            username TEXT NOT NULL,
            rating INTEGER NOT NULL CHECK(rating >= 1 AND rating <= 5),
            comment TEXT NOT NULL,
            createdAt TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updatedAt TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (bookId) REFERENCES books(id) ON DELETE CASCADE,
            FOREIGN KEY (userId) REFERENCES users(id) ON DELETE SET NULL
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_title ON books(title)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_isbn ON books(isbn)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_user_collections_user ON user_collections(userId)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_reset_tokens_token ON reset_tokens(token)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_authors_name ON authors(name)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_author_books_book ON author_books(book_id)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_reviews_book ON reviews(bookId)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_reviews_user ON reviews(userId)")

    # Older databases predate email verification and roles
    cursor.execute("PRAGMA table_info(users)")
    columns = [column[1] for column in cursor.fetchall()]
    if "email_verified" not in columns:
        cursor.execute("ALTER TABLE users ADD COLUMN email_verified INTEGER DEFAULT 0")
    if "verification_token" not in columns:
        cursor.execute("ALTER TABLE users ADD COLUMN verification_token TEXT")
    if "verification_token_expires" not in columns:
        cursor.execute("ALTER TABLE users ADD COLUMN verification_token_expires TEXT")
    if "role" not in columns:
        cursor.execute("ALTER TABLE users ADD COLUMN role TEXT DEFAULT 'USER'")

    conn.commit()
    conn.close()


def initialize_database() -> None:
    """Initialize the database, creating tables if needed."""
    create_tables()
    logger.debug("Database ready at %s", DATABASE_FILE)
