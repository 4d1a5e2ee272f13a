"""
Per-app service objects, built once in create_app() from the app config and
stored on app.extensions. Handlers reach them through the accessors below.
"""
from flask import current_app

from api.delivery import TokenDelivery
from models.audit_trail import AuditTrail
from models.credential_store import CredentialStore
from models.session_ledger import SessionLedger
from utils.tokens import TokenCodec, TokenSettings


def init_app(app, storage):
    app.extensions["token_codec"] = TokenCodec(TokenSettings.from_config(app.config))
    app.extensions["token_delivery"] = TokenDelivery.from_config(app.config)
    app.extensions["credential_store"] = CredentialStore(storage)
    app.extensions["session_ledger"] = SessionLedger(storage)
    app.extensions["audit_trail"] = AuditTrail(storage)


def token_codec() -> TokenCodec:
    return current_app.extensions["token_codec"]


def token_delivery() -> TokenDelivery:
    return current_app.extensions["token_delivery"]


def credential_store() -> CredentialStore:
    return current_app.extensions["credential_store"]


def session_ledger() -> SessionLedger:
    return current_app.extensions["session_ledger"]


def audit_trail() -> AuditTrail:
    return current_app.extensions["audit_trail"]
