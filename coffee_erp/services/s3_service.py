import logging
import boto3
from botocore.client import Config
from botocore.exceptions import ClientError
from flask import current_app
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


class S3Service:
    """Document bucket for payment proofs (receipt scans, transfer screenshots)."""

    def __init__(self):
        region = current_app.config['AWS_REGION']
        self.s3_client = boto3.client(
            's3',
            aws_access_key_id=current_app.config['AWS_ACCESS_KEY_ID'],
            aws_secret_access_key=current_app.config['AWS_SECRET_ACCESS_KEY'],
            region_name=region,
            endpoint_url=f'https://s3.{region}.amazonaws.com',
            config=Config(signature_version='s3v4')
        )
        self.bucket = current_app.config['S3_BUCKET_NAME']

    @staticmethod
    def proof_key(payment_reference, filename):
        """Bucket key for a payment's proof, e.g. 'payments/PAY-1A2B3C/receipt.pdf'."""
        return f"payments/{payment_reference}/{secure_filename(filename) or 'proof'}"

    def upload_file(self, file_obj, object_name):
        """Returns the key on success, None when the bucket refuses the upload."""
        content_type = getattr(file_obj, 'content_type', None) or 'application/octet-stream'
        try:
            self.s3_client.upload_fileobj(
                file_obj, self.bucket, object_name,
                ExtraArgs={'ContentType': content_type}
            )
        except ClientError as e:
            logger.error("Proof upload to %s failed for %s: %s", self.bucket, object_name, e)
            return None
        logger.info("Stored proof %s in %s", object_name, self.bucket)
        return object_name

    def generate_presigned_url(self, object_name, expiration=3600):
        try:
            return self.s3_client.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket, 'Key': object_name},
                ExpiresIn=expiration
            )
        except ClientError as e:
            logger.error("Could not sign download link for %s: %s", object_name, e)
            return None
