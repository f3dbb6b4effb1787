import json
import logging

import firebase_admin
import google.cloud.firestore
from firebase_admin import credentials, firestore

from ..config import settings

logger = logging.getLogger(__name__)

class FirebaseDB:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(FirebaseDB, cls).__new__(cls)
            cls._instance.initialized = False
        return cls._instance

    def __init__(self):
        if self.initialized:
            return
        logger.info("FirebaseDB.__init__() called")
        self.app = None
        self.firestore_db = None
        self.connect()
        self.initialized = True
        return

    def get_app(self) -> firebase_admin.App:
        return self.app

    def get_firestore_db(self) -> google.cloud.firestore.Client:
        # Return a reference to the Firestore client
        return self.firestore_db

    def connect(self) -> None:
        try:
            # Try to get the existing default app
            self.app = firebase_admin.get_app()
            self.firestore_db = firestore.client(self.app)
            logger.info("Retrieved existing Firebase app")
        except ValueError:
            options = {}
            if settings.firebase_project_id:
                options["projectId"] = settings.firebase_project_id

            cert_json = settings.firebase_secret
            if cert_json:
                cert_dict = json.loads(cert_json)
                if isinstance(cert_dict, str):
                    cert_dict = json.loads(cert_dict)
                cred = credentials.Certificate(cert_dict)
            else:
                # Cloud runtimes and the emulator suite provide default credentials
                logger.info("FIREBASE_SECRET not set, using application default credentials")
                cred = None

            self.app = firebase_admin.initialize_app(credential=cred, options=options or None)
            self.firestore_db = firestore.client(self.app)
            logger.info(f"Connected to Firebase. App name: {self.app.name}")
        return
