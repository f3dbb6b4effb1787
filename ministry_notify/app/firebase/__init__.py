import google.cloud.firestore

from .firebase import FirebaseDB
from .push_client import PushClient, PushReport


def get_firestore_db() -> google.cloud.firestore.Client:
    return FirebaseDB().get_firestore_db()


def get_push_client() -> PushClient:
    return PushClient(app=FirebaseDB().get_app())
