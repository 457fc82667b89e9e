"""
Configuration management for Malafati backend.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Base paths
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = BASE_DIR / "data"

# Database
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR / 'app.db'}")

# Auth
JWT_SECRET = os.getenv("MALAFATI_JWT_SECRET", "dev-secret-change-me")
JWT_TTL_HOURS = int(os.getenv("MALAFATI_JWT_TTL_HOURS", "12"))

# Google OAuth client (used only to refresh stored teacher tokens)
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive.file"]

# Server configuration
APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:5000")
HOST = "0.0.0.0"
PORT = int(os.getenv("PORT", "5000"))
DEBUG = os.getenv("FLASK_DEBUG", "0") == "1"

# Folder provisioning
FOLDER_BATCH_SIZE = int(os.getenv("FOLDER_BATCH_SIZE", "3"))
FOLDER_BATCH_DELAY = float(os.getenv("FOLDER_BATCH_DELAY", "0.5"))
DRIVE_HTTP_TIMEOUT = int(os.getenv("DRIVE_HTTP_TIMEOUT", "30"))
DRIVE_NUM_RETRIES = int(os.getenv("DRIVE_NUM_RETRIES", "3"))
MAX_REPORTED_ERRORS = 10

DEFAULT_SUBJECT = os.getenv("DEFAULT_SUBJECT", "عام")
DEFAULT_CATEGORY = "أخرى"

# Optional fixed category folders created under each subject folder
FOLDER_CATEGORY_SUBFOLDERS = [
    c.strip() for c in os.getenv("FOLDER_CATEGORY_SUBFOLDERS", "").split(",") if c.strip()
]

# Uploads
MAX_UPLOAD_FILES = 10
MAX_CONTENT_LENGTH = 50 * 1024 * 1024

FILE_CATEGORIES = {
    "EXAMS": "اختبارات",
    "GRADES": "درجات",
    "HOMEWORK": "واجبات",
    "NOTES": "ملاحظات",
    "ALERTS": "إنذارات",
    "PARTICIPATION": "مشاركات",
    "CERTIFICATES": "شهادات",
    "ATTENDANCE": "حضور وغياب",
    "BEHAVIOR": "سلوك",
    "OTHER": "أخرى",
}

# Subjects every install starts with; teachers pick from these during onboarding
COMMON_SUBJECTS = [
    "اللغة العربية",
    "الرياضيات",
    "العلوم",
    "اللغة الإنجليزية",
    "الدراسات الاجتماعية",
    "التربية الإسلامية",
    "القرآن الكريم",
    "التربية الفنية",
    "التربية الرياضية",
    "الحاسب الآلي",
    "الفيزياء",
    "الكيمياء",
    "الأحياء",
    "التاريخ",
    "الجغرافيا",
    "الفلسفة والمنطق",
    "علم النفس",
    "الاقتصاد",
    "اللغة الفرنسية",
    "اللغة الألمانية",
]

DEFAULT_CAPTCHA_QUESTIONS = [
    ("كم يساوي: 2 + 3 = ؟", "5"),
    ("كم يساوي: 7 - 2 = ؟", "5"),
    ("كم يساوي: 3 × 2 = ؟", "6"),
    ("كم يساوي: 8 ÷ 2 = ؟", "4"),
    ("كم عدد أيام الأسبوع؟", "7"),
    ("كم عدد حروف كلمة 'طالب'؟", "4"),
    ("كم يساوي: 10 - 5 = ؟", "5"),
    ("كم يساوي: 4 + 1 = ؟", "5"),
]


class Config:
    """Application configuration class."""

    def __init__(self):
        self.database_url = DATABASE_URL
        self.jwt_secret = JWT_SECRET
        self.app_base_url = APP_BASE_URL
        self.folder_batch_size = FOLDER_BATCH_SIZE
        self.folder_batch_delay = FOLDER_BATCH_DELAY
        self.default_subject = DEFAULT_SUBJECT
        self.folder_category_subfolders = list(FOLDER_CATEGORY_SUBFOLDERS)

    def to_dict(self):
        return {
            "DATABASE_URL": self.database_url,
            "JWT_SECRET": self.jwt_secret,
            "APP_BASE_URL": self.app_base_url,
            "FOLDER_BATCH_SIZE": self.folder_batch_size,
            "FOLDER_BATCH_DELAY": self.folder_batch_delay,
            "DEFAULT_SUBJECT": self.default_subject,
            "FOLDER_CATEGORY_SUBFOLDERS": self.folder_category_subfolders,
            "MAX_CONTENT_LENGTH": MAX_CONTENT_LENGTH,
        }


# Global config instance
config = Config()
