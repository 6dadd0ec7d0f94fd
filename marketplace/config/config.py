"""
Application Configuration

FLOW OVERVIEW
- Config.__init__
  • Reads FLASK_ENV to select which .env file to load (dev/prod). Testing bypasses file load.
- Properties expose configuration values, defaulting to sensible development-safe defaults.
"""

import os
from dotenv import load_dotenv


class Config:
    """Base configuration class"""

    def __init__(self, load_env=True):
        # Load environment variables based on FLASK_ENV
        env_file = os.getenv('FLASK_ENV', 'development')
        if not load_env or env_file == 'testing':
            # For testing, don't load config files, use environment variables directly
            pass
        elif env_file == 'production':
            load_dotenv('config.prod.env')
        else:
            load_dotenv('config.env')  # Default to development

    @property
    def SECRET_KEY(self):
        """Application secret key, also signs the session cookie"""
        return os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')

    @property
    def SQLALCHEMY_DATABASE_URI(self):
        """Database connection URI"""
        return os.getenv('DATABASE_URL', 'sqlite:///marketplace.db')

    @property
    def SQLALCHEMY_TRACK_MODIFICATIONS(self):
        """SQLAlchemy track modifications setting"""
        return False

    @property
    def MAIL_SERVER(self):
        """SMTP relay hostname"""
        return os.getenv('MAIL_SERVER', 'smtpout.secureserver.net')

    @property
    def MAIL_PORT(self):
        """SMTP relay port"""
        return int(os.getenv('MAIL_PORT', 465))

    @property
    def MAIL_USE_TLS(self):
        """Whether to use STARTTLS for mail"""
        return os.getenv('MAIL_USE_TLS', 'False').lower() == 'true'

    @property
    def MAIL_USE_SSL(self):
        """Whether to use implicit SSL for mail"""
        return os.getenv('MAIL_USE_SSL', 'True').lower() == 'true'

    @property
    def MAIL_USERNAME(self):
        """Mail server username"""
        return os.getenv('MAIL_USERNAME')

    @property
    def MAIL_PASSWORD(self):
        """Mail server password"""
        return os.getenv('MAIL_PASSWORD')

    @property
    def MAIL_DEFAULT_SENDER(self):
        """Default sender email address"""
        return os.getenv('MAIL_DEFAULT_SENDER', os.getenv('MAIL_USERNAME'))

    @property
    def SESSION_COOKIE_SECURE(self):
        """Whether session cookies should be secure (HTTPS only)"""
        return os.getenv('SESSION_COOKIE_SECURE', 'False').lower() == 'true'

    @property
    def SESSION_COOKIE_HTTPONLY(self):
        """Whether session cookies should be HTTP only"""
        return True

    @property
    def SESSION_COOKIE_SAMESITE(self):
        """Session cookie SameSite policy"""
        return 'Lax'

    @property
    def PERMANENT_SESSION_LIFETIME(self):
        """Session lifetime in seconds"""
        return int(os.getenv('SESSION_LIFETIME', 604800))

    @property
    def STORAGE_URL(self):
        """Base URL of the object storage service"""
        return os.getenv('STORAGE_URL', 'http://localhost:54321')

    @property
    def STORAGE_SERVICE_KEY(self):
        """Service key used to request signed URLs"""
        return os.getenv('STORAGE_SERVICE_KEY', '')

    @property
    def STORAGE_BUCKET(self):
        """Bucket holding product and store images"""
        return os.getenv('STORAGE_BUCKET', 'images')

    @property
    def STORAGE_PLACEHOLDER_URL(self):
        """Image returned when a signed URL cannot be produced"""
        return os.getenv('STORAGE_PLACEHOLDER_URL', '/placeholder.svg')

    @property
    def STORAGE_TIMEOUT(self):
        """Timeout in seconds for storage signer calls"""
        return float(os.getenv('STORAGE_TIMEOUT', 5))

    @property
    def PAYMENT_GATEWAY_TIMEOUT(self):
        """Timeout in seconds for bank 3-D Secure verification calls"""
        return float(os.getenv('PAYMENT_GATEWAY_TIMEOUT', 15))

    @property
    def EINVOICE_API_URL(self):
        """E-archive invoice dispatch endpoint"""
        return os.getenv('EINVOICE_API_URL', 'https://earsivportal.efatura.gov.tr/earsiv-services/dispatch')

    @property
    def EINVOICE_TIMEOUT(self):
        """Timeout in seconds for e-archive dispatch calls"""
        return float(os.getenv('EINVOICE_TIMEOUT', 30))

    @property
    def DEFAULT_TAX_RATE(self):
        """VAT rate applied to order items that carry none"""
        return float(os.getenv('DEFAULT_TAX_RATE', 18))

    @property
    def CARD_EDIT_CODE_TTL_MINUTES(self):
        """Lifetime of a card edit verification code"""
        return int(os.getenv('CARD_EDIT_CODE_TTL_MINUTES', 10))

    @property
    def CARD_EDIT_CODE_MAX_PER_WINDOW(self):
        """Codes a user may request for one card within the window"""
        return int(os.getenv('CARD_EDIT_CODE_MAX_PER_WINDOW', 5))

    @property
    def CARD_EDIT_CODE_WINDOW_SECONDS(self):
        """Window used to count code requests"""
        return int(os.getenv('CARD_EDIT_CODE_WINDOW_SECONDS', 600))

    @property
    def CARD_EDIT_VERIFY_MAX_ATTEMPTS(self):
        """Verification attempts allowed per user per minute"""
        return int(os.getenv('CARD_EDIT_VERIFY_MAX_ATTEMPTS', 10))
