import os
from decimal import Decimal
from dotenv import load_dotenv

# Load the .env file immediately
load_dotenv()

basedir = os.path.abspath(os.path.dirname(__file__))

class Config:
    # 1. Security
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-fallback-key'
    WTF_CSRF_ENABLED = os.environ.get('WTF_CSRF_ENABLED', 'False') == 'True'

    # 2. Database
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'coffee_erp.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # 3. Uploads (payment proofs, receipt scans)
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024

    # 4. Document bucket
    AWS_REGION = os.environ.get('AWS_REGION') or 'eu-west-1'
    AWS_ACCESS_KEY_ID = os.environ.get('AWS_ACCESS_KEY_ID')
    AWS_SECRET_ACCESS_KEY = os.environ.get('AWS_SECRET_ACCESS_KEY')
    S3_BUCKET_NAME = os.environ.get('S3_BUCKET_NAME') or 'coffee-erp-documents'
    PROOF_URL_EXPIRY = int(os.environ.get('PROOF_URL_EXPIRY') or 3600)

    # 5. Email Configuration
    MAIL_SERVER = os.environ.get('MAIL_SERVER') or 'smtp.gmail.com'
    MAIL_PORT = int(os.environ.get('MAIL_PORT') or 587)
    MAIL_USE_TLS = os.environ.get('MAIL_USE_TLS') == 'True'
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = MAIL_USERNAME or 'noreply@greatpearlcoffee.com'

    # 6. Celery Configuration
    CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL') or 'redis://localhost:6379/0'
    CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND') or 'redis://localhost:6379/0'
    CELERY_TASK_ALWAYS_EAGER = False

    # 7. Workflow
    DEFAULT_CURRENCY = os.environ.get('DEFAULT_CURRENCY') or 'UGX'
    # Requests at or above this amount need a second admin approval
    THREE_APPROVAL_THRESHOLD = Decimal(os.environ.get('THREE_APPROVAL_THRESHOLD') or '5000000')

    # 8. Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL') or 'INFO'
    LOG_TO_STDOUT = os.environ.get('LOG_TO_STDOUT') == 'True'


class TestConfig(Config):
    TESTING = True
    WTF_CSRF_ENABLED = False
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    CELERY_TASK_ALWAYS_EAGER = True
    MAIL_SUPPRESS_SEND = True
    THREE_APPROVAL_THRESHOLD = Decimal('1000000')
