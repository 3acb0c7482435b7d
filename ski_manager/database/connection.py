import os
import psycopg2
from dotenv import load_dotenv

# DB_* settings (or a full SKI_DATABASE_URL) may live in a local .env file
load_dotenv()

SCHEMA_NAME = 'ski'

def connection_settings():
    """
    Returns keyword arguments for psycopg2.connect built from the
    environment. SKI_DATABASE_URL wins over the individual DB_* variables.
    """
    options = f"-c search_path={SCHEMA_NAME},public -c timezone=UTC"
    dsn = os.getenv('SKI_DATABASE_URL')
    if dsn:
        return {'dsn': dsn, 'options': options}
    return {
        'dbname': os.getenv('DB_NAME'),
        'user': os.getenv('DB_USER'),
        'password': os.getenv('DB_PASSWORD'),
        'host': os.getenv('DB_HOST'),
        'port': os.getenv('DB_PORT', 5432),
        'options': options,
    }

def get_db_connection():
    """
    Opens a connection with the save-game schema first on the search path.
    Returns None when the server cannot be reached.
    """
    try:
        return psycopg2.connect(**connection_settings())
    except Exception as e:
        print(f"Error: Could not connect to the save database. {e}")
        return None

if __name__ == '__main__':
    conn = get_db_connection()
    if conn:
        print(f"Connected; saves live in schema '{SCHEMA_NAME}'.")
        conn.close()
    else:
        print("Database connection failed.")
