"""
Firebase Admin initialization for the Agenta backend.

This module provides centralized Firebase Admin initialization using a service account file.
It ensures Firebase is initialized only once and uses explicit credentials instead of ADC.

Usage:
    from firebase_init import init_firebase

    db = init_firebase()
"""

import firebase_admin
from firebase_admin import credentials, firestore
import os


def _resolve_service_account_path() -> str:
    """
    Locate the service account file.

    Order: FIREBASE_SERVICE_ACCOUNT_PATH, backend/keys/..., ./backend/keys/...

    Raises:
        RuntimeError: If no candidate path exists
    """
    service_account_path = os.getenv("FIREBASE_SERVICE_ACCOUNT_PATH")
    if service_account_path:
        return os.path.abspath(service_account_path)

    current_dir = os.path.dirname(os.path.abspath(__file__))
    default_path = os.path.abspath(os.path.join(current_dir, "keys", "firebase_service_account.json"))
    if os.path.exists(default_path):
        print(f"[Firebase Init] Using default service account path: {default_path}")
        return default_path

    alt_path = os.path.abspath(os.path.join(os.getcwd(), "backend", "keys", "firebase_service_account.json"))
    if os.path.exists(alt_path):
        print(f"[Firebase Init] Using alternative service account path: {alt_path}")
        return alt_path

    raise RuntimeError(
        "FIREBASE_SERVICE_ACCOUNT_PATH environment variable is not set and "
        f"default paths not found:\n"
        f"  - {default_path}\n"
        f"  - {alt_path}\n"
        "Please set FIREBASE_SERVICE_ACCOUNT_PATH or place the service account file at one of the above locations."
    )


def init_firebase():
    """
    Initialize Firebase Admin SDK using a service account file.

    Safe to call multiple times; the app is initialized once.

    Returns:
        firestore.Client: Initialized Firestore client

    Raises:
        RuntimeError: If the service account file cannot be found or initialization fails
    """
    if not firebase_admin._apps:
        service_account_path = _resolve_service_account_path()

        if not os.path.exists(service_account_path):
            raise RuntimeError(
                f"Firebase service account file not found at: {service_account_path}. "
                "Please check that the path is correct."
            )

        try:
            cred = credentials.Certificate(service_account_path)
            firebase_admin.initialize_app(cred)
            print(f"[Firebase Init] ✅ Firebase initialized with service account: {service_account_path}")
        except Exception as e:
            raise RuntimeError(
                f"Failed to initialize Firebase with service account at {service_account_path}: {str(e)}"
            )

    return firestore.client()
