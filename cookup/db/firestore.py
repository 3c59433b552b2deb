"""
Firestore database configuration and initialization
"""
import logging
import os
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore

logger = logging.getLogger(__name__)


def initialize_firebase_app(
    service_account_path: Optional[str] = None,
    project_id: Optional[str] = None,
):
    """
    Initialize the default Firebase app once per process.

    Args:
        service_account_path: Path to a service account key file
        project_id: Project ID used with default credentials

    Returns:
        The default firebase_admin App
    """
    # Check if Firebase is already initialized
    if firebase_admin._apps:
        return firebase_admin.get_app()

    # Option 1: Use service account key file
    if service_account_path and os.path.exists(service_account_path):
        logger.info("Initializing Firebase with service account: %s", service_account_path)
        cred = credentials.Certificate(service_account_path)
        return firebase_admin.initialize_app(cred)

    # Option 2: Use default credentials (for Cloud Run, App Engine, etc.)
    logger.info("No service account found, using default credentials")
    if project_id:
        return firebase_admin.initialize_app(options={"projectId": project_id})
    return firebase_admin.initialize_app()


def initialize_firestore(
    service_account_path: Optional[str] = None,
    project_id: Optional[str] = None,
):
    """
    Initialize Firestore database connection.

    Returns:
        Firestore client instance
    """
    initialize_firebase_app(service_account_path, project_id)
    client = firestore.client()
    logger.info("Firestore initialized")
    return client
