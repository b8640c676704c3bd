from dotenv import load_dotenv
import os

# Load environment variables from a .env file
load_dotenv()

# Retrieve parts of the database URL from environment variables
DB_USER = os.getenv("DB_USERNAME", "root")
DB_PASSWORD = os.getenv("DB_PASSWORD", "")
DB_HOST = os.getenv("DB_HOST", "127.0.0.1")
DB_PORT = os.getenv("DB_PORT", "3306")
DB_NAME = os.getenv("DB_NAME", "votely")

# Auth
SECRET_KEY = os.getenv("SECRET_KEY", "secret")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 30))

# AWS Configuration
S3_BUCKET_NAME = os.getenv("S3_BUCKET_NAME")
AWS_ACCESS_KEY = os.getenv("AWS_ACCESS_KEY")
AWS_SECRET_KEY = os.getenv("AWS_SECRET_KEY")
S3_REGION = os.getenv("S3_REGION")
S3_URL = os.getenv("S3_URL", f"https://{S3_BUCKET_NAME}.s3.{S3_REGION}.amazonaws.com")

# Idea images
IDEA_IMAGES_FOLDER = os.getenv("IDEA_IMAGES_FOLDER", "product-images")
IDEA_IMAGE_WIDTH = int(os.getenv("IDEA_IMAGE_WIDTH", 1200))
IDEA_IMAGE_HEIGHT = int(os.getenv("IDEA_IMAGE_HEIGHT", 800))
IDEA_IMAGE_QUALITY = int(os.getenv("IDEA_IMAGE_QUALITY", 85))
PLACEHOLDER_IMAGE_URL = os.getenv("PLACEHOLDER_IMAGE_URL", "https://placehold.co/600x400?text=No+Image")
# Any image_url containing this is a shared placeholder and is never deleted
PLACEHOLDER_IMAGE_PATTERN = os.getenv("PLACEHOLDER_IMAGE_PATTERN", "placehold.co")

# Remove a submission's votes together with the submission. When off, deleting a
# voted submission fails with a referential integrity error.
CASCADE_VOTES_ON_DELETE = os.getenv("CASCADE_VOTES_ON_DELETE", "true").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Build the database URL
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"mysql+pymysql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
)
