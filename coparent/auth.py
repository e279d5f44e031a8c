import base64
import json
import logging
import time

import httpx
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.x509 import load_pem_x509_certificate
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import FIREBASE_PROJECT_ID
from .database import get_db
from .models import User

logger = logging.getLogger(__name__)

security = HTTPBearer()

GOOGLE_CERTS_URL = (
    "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
)

# Cache for Google's public keys
_cached_keys = None


async def get_google_public_keys():
    """Fetch Google's public keys for Firebase token verification"""
    global _cached_keys
    if _cached_keys:
        return _cached_keys

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(GOOGLE_CERTS_URL)
            if response.status_code == 200:
                _cached_keys = response.json()
                logger.info(f"✅ Fetched {len(_cached_keys)} Google public keys")
                return _cached_keys
            logger.error(f"❌ Failed to fetch Google public keys: HTTP {response.status_code}")
    except httpx.HTTPError as e:
        logger.error(f"❌ Error fetching Google public keys: {str(e)}")
    return None


def _b64decode(segment: str) -> bytes:
    padding_len = 4 - len(segment) % 4
    return base64.urlsafe_b64decode(segment + ("=" * padding_len if padding_len != 4 else ""))


async def verify_firebase_token(token: str) -> dict:
    """
    Verify a Firebase ID token: RS256 signature against Google's certificates,
    then audience, issuer, expiry and issued-at claims.
    """
    global _cached_keys

    if not FIREBASE_PROJECT_ID:
        logger.error("❌ FIREBASE_PROJECT_ID not configured")
        raise HTTPException(status_code=500, detail="Firebase not configured")

    parts = token.split(".")
    if len(parts) != 3:
        raise HTTPException(status_code=401, detail="Invalid token format")
    header_b64, payload_b64, signature_b64 = parts

    try:
        header = json.loads(_b64decode(header_b64))
    except (ValueError, TypeError) as e:
        raise HTTPException(status_code=401, detail="Invalid token header") from e

    kid = header.get("kid")
    if header.get("alg") != "RS256" or not kid:
        logger.warning(f"⚠️ Rejected token header: alg={header.get('alg')}, kid={kid}")
        raise HTTPException(status_code=401, detail="Invalid token header")

    public_keys = await get_google_public_keys()
    if not public_keys or kid not in public_keys:
        # Keys rotate; refetch once
        _cached_keys = None
        public_keys = await get_google_public_keys()
        if not public_keys or kid not in public_keys:
            logger.error(f"❌ Key ID {kid} not found in public keys after retry")
            raise HTTPException(status_code=401, detail="Unable to verify token signature")

    cert = load_pem_x509_certificate(public_keys[kid].encode(), default_backend())
    try:
        cert.public_key().verify(
            _b64decode(signature_b64),
            f"{header_b64}.{payload_b64}".encode(),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
    except Exception as e:
        logger.error(f"❌ Token signature verification failed: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid token signature") from e

    try:
        claims = json.loads(_b64decode(payload_b64))
    except (ValueError, TypeError) as e:
        raise HTTPException(status_code=401, detail="Invalid token payload") from e

    if claims.get("aud") != FIREBASE_PROJECT_ID:
        raise HTTPException(status_code=401, detail="Invalid token audience")
    if claims.get("iss") != f"https://securetoken.google.com/{FIREBASE_PROJECT_ID}":
        raise HTTPException(status_code=401, detail="Invalid token issuer")

    now = time.time()
    if claims.get("exp", 0) < now:
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        )
    # 60s clock skew
    if claims.get("iat", 0) > now + 60:
        raise HTTPException(status_code=401, detail="Invalid token")

    return claims


def get_or_create_user(db: Session, uid: str, email: str, name: str = "") -> User:
    """Find the local user row for an identity, creating it on first sign-in"""
    user = db.query(User).filter(User.id == uid).first()
    if user:
        if email and user.email != email:
            user.email = email
            db.commit()
        return user

    logger.info(f"🆕 Creating new user: {email}")
    user = User(id=uid, email=email or "", full_name=name or None)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent first request for the same uid
        db.rollback()
        user = db.query(User).filter(User.id == uid).first()
        if not user:
            raise
    db.refresh(user)
    return user


async def authenticate_token(token: str, db: Session) -> User:
    """Verify a bearer token and return the matching local user"""
    claims = await verify_firebase_token(token)
    uid = claims.get("sub") or claims.get("user_id") or claims.get("uid")
    if not uid:
        logger.error(f"❌ Token missing user ID claim. Available claims: {list(claims.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")
    return get_or_create_user(db, uid, claims.get("email", ""), claims.get("name", ""))


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from Firebase token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )
    return await authenticate_token(credentials.credentials, db)
