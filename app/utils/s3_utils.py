import boto3
import os
import uuid
from botocore.exceptions import NoCredentialsError
from urllib.parse import urlparse
from flask import current_app
from werkzeug.utils import secure_filename

from app.utils.validators import is_allowed_image

AVATARS_FOLDER = "avatars"
STUDIO_LOGOS_FOLDER = "studios/logos"
STUDIO_BANNERS_FOLDER = "studios/banners"
DESIGNS_FOLDER = "designs"


class StorageError(Exception):
    pass


def _client():
    return boto3.client(
        "s3",
        aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
        aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        region_name=os.getenv("AWS_REGION"),
    )


def build_object_key(folder, owner_id, filename):
    return f"{folder}/{owner_id}/{uuid.uuid4()}_{secure_filename(filename)}"


def upload_file_to_s3(file, filename, bucket_name):
    s3 = _client()
    try:
        s3.upload_fileobj(file, bucket_name, filename, ExtraArgs={"ACL": "public-read"})
        base_url = os.getenv("S3_BASE_URL")
        generated_url = f"{base_url}/{filename}"

        return generated_url

    except NoCredentialsError:
        raise StorageError("AWS credentials not found. Check environment variables.")


def delete_file_from_s3(image_url, bucket_name):
    s3 = _client()

    try:
        parsed = urlparse(image_url)
        key = parsed.path.lstrip("/")

        s3.delete_object(Bucket=bucket_name, Key=key)
        return True

    except NoCredentialsError:
        raise StorageError("AWS credentials not found. Check environment variables.")
    except Exception as e:
        print(f"Error deleting file from S3: {e}")
        return False


def upload_image(file, folder, owner_id):
    """
    Validate and upload an image under folder/owner_id.

    Returns (public_url, object_key). Raises ValueError for a missing or
    non-image file and StorageError when the bucket is unusable.
    """
    if not file or not file.filename:
        raise ValueError("An image file is required")
    if not is_allowed_image(file.filename):
        raise ValueError("Only png, jpg, jpeg, gif and webp images are allowed")

    bucket_name = current_app.config.get("S3_BUCKET_NAME")
    if not bucket_name:
        raise StorageError("S3_BUCKET_NAME is not configured")

    key = build_object_key(folder, owner_id, file.filename)
    url = upload_file_to_s3(file, key, bucket_name)
    if not url:
        raise StorageError("File upload failed")
    return url, key
