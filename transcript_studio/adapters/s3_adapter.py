"""
AWS S3 adapter for the artifact store.

Keeps the registry, history and transcript documents as JSON objects
under a key prefix.
"""

import boto3
import json
import logging
from typing import Optional, Dict, Any
from botocore.exceptions import ClientError

from .base import DocumentStore

logger = logging.getLogger("transcript_studio")


class S3DocumentStore(DocumentStore):
    """AWS S3 implementation of the document store"""

    def __init__(self, bucket: str, region: str = "us-east-1", prefix: str = "transcript-studio/"):
        self.bucket = bucket
        self.region = region
        self.prefix = prefix
        self.s3 = None

    def connect(self):
        """Initialize S3 client"""
        try:
            self.s3 = boto3.client('s3', region_name=self.region)
            logger.info(f"S3 document store connected to bucket: {self.bucket}")
        except Exception as e:
            logger.error(f"Failed to connect to S3: {e}")
            raise

    def _key(self, name: str) -> str:
        return f"{self.prefix}{name}"

    def read_document(self, name: str, fallback: Any = None) -> Any:
        try:
            response = self.s3.get_object(Bucket=self.bucket, Key=self._key(name))
            return json.loads(response['Body'].read())
        except ClientError as e:
            code = e.response.get('Error', {}).get('Code')
            if code not in ('NoSuchKey', '404'):
                logger.warning(f"Error reading {name} from S3, using fallback: {e}")
            return fallback
        except ValueError as e:
            logger.warning(f"Malformed document {name} in S3, using fallback: {e}")
            return fallback

    def write_document(self, name: str, document: Any) -> None:
        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=self._key(name),
                Body=json.dumps(document, indent=2, ensure_ascii=False).encode('utf-8'),
                ContentType='application/json'
            )
        except ClientError as e:
            logger.error(f"Error storing {name} in S3: {e}")
            raise

    def document_size(self, name: str) -> Optional[int]:
        try:
            response = self.s3.head_object(Bucket=self.bucket, Key=self._key(name))
            return int(response.get('ContentLength', 0))
        except ClientError:
            return None

    def delete_document(self, name: str) -> None:
        try:
            self.s3.delete_object(Bucket=self.bucket, Key=self._key(name))
        except ClientError as e:
            logger.error(f"Error deleting {name} from S3: {e}")
            raise

    def get_stats(self) -> Dict[str, Any]:
        """Get storage statistics from S3"""
        try:
            response = self.s3.list_objects_v2(
                Bucket=self.bucket,
                Prefix=self.prefix
            )

            objects = response.get('Contents', [])

            return {
                'total_documents': len(objects),
                'transcript_documents': len([obj for obj in objects if '/text/' in obj['Key']]),
                'total_size_bytes': sum(obj['Size'] for obj in objects)
            }

        except ClientError as e:
            logger.error(f"Error getting S3 stats: {e}")
            return {}

    def close(self):
        """Close S3 connection"""
        self.s3 = None
        logger.info("S3 document store connection closed")
