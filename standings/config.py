import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Engine configuration settings"""
    
    # Database settings
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite+aiosqlite:///standings.db')
    
    # Logging settings
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'
    LOG_DIR = os.getenv('LOG_DIR', 'logs')
    LOG_TO_FILE = os.getenv('LOG_TO_FILE', 'True').lower() == 'true'
    
    # Default outcome weights for formulas that omit them
    DEFAULT_WIN_WEIGHT = os.getenv('DEFAULT_WIN_WEIGHT', '3')
    DEFAULT_DRAW_WEIGHT = os.getenv('DEFAULT_DRAW_WEIGHT', '1')
    DEFAULT_LOSS_WEIGHT = os.getenv('DEFAULT_LOSS_WEIGHT', '0')
    
    # Storage fetch settings
    FETCH_MAX_RETRIES = int(os.getenv('FETCH_MAX_RETRIES', 3))
    
    # Movement history: number of snapshot rows scanned for previous positions
    SNAPSHOT_HISTORY_LIMIT = int(os.getenv('SNAPSHOT_HISTORY_LIMIT', 500))
    
    @classmethod
    def get_default_weights(cls):
        """Get default (win, draw, loss) weights as strings"""
        return cls.DEFAULT_WIN_WEIGHT, cls.DEFAULT_DRAW_WEIGHT, cls.DEFAULT_LOSS_WEIGHT
    
    @classmethod
    def validate(cls):
        """Validate that configuration values are usable"""
        if not cls.DATABASE_URL:
            raise ValueError("DATABASE_URL is required")
        for name in ('DEFAULT_WIN_WEIGHT', 'DEFAULT_DRAW_WEIGHT', 'DEFAULT_LOSS_WEIGHT'):
            try:
                float(getattr(cls, name))
            except ValueError:
                raise ValueError(f"{name} must be numeric")
        if cls.FETCH_MAX_RETRIES < 1:
            raise ValueError("FETCH_MAX_RETRIES must be at least 1")
        if cls.SNAPSHOT_HISTORY_LIMIT < 1:
            raise ValueError("SNAPSHOT_HISTORY_LIMIT must be at least 1")
