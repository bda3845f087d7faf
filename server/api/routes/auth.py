"""Authentication API routes"""
from fastapi import APIRouter, HTTPException, Depends, status
import logging

from api.schemas.request_schemas import (
    SignUpRequest,
    SignInRequest,
    RefreshTokenRequest,
    PasswordResetRequest,
    PasswordResetConfirmRequest,
)
from api.schemas.response_schemas import TokenResponse, UserResponse
from api.middleware.auth_middleware import get_current_user
from core.dependencies import get_auth_service
from models.user import Identity
from services.auth_service import AuthService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/signup", response_model=TokenResponse)
async def sign_up(
    request: SignUpRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Create an account and sign it in"""
    try:
        identity, access_token, refresh_token = await auth_service.sign_up(
            name=request.name,
            email=request.email,
            password=request.password,
        )

        return TokenResponse(
            uid=identity.uid,
            access_token=access_token,
            refresh_token=refresh_token
        )

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Sign up error: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Sign Up Failed")


@router.post("/signin", response_model=TokenResponse)
async def sign_in(
    request: SignInRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Sign in with email and password"""
    try:
        identity, access_token, refresh_token = await auth_service.sign_in(
            email=request.email,
            password=request.password
        )

        return TokenResponse(
            uid=identity.uid,
            access_token=access_token,
            refresh_token=refresh_token
        )

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except Exception as e:
        logger.error(f"Sign in error: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Sign in failed")


@router.post("/refresh")
async def refresh_token(
    request: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Refresh access token"""
    try:
        new_access_token = await auth_service.refresh_access_token(request.refresh_token)

        return {
            "access_token": new_access_token,
            "token_type": "bearer"
        }

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except Exception as e:
        logger.error(f"Token refresh error: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Token refresh failed")


@router.post("/signout")
async def sign_out(
    request: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """End the session behind a refresh token"""
    try:
        await auth_service.sign_out(request.refresh_token)
        return {"success": True}
    except Exception as e:
        logger.error(f"Sign out error: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Sign out failed")


@router.post("/password-reset")
async def send_password_reset(
    request: PasswordResetRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Send a password reset code to the account's email"""
    try:
        await auth_service.send_password_reset(request.email)
        return {
            "success": True,
            "message": f"Password reset link sent to {request.email}",
        }
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Password reset error: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Password reset failed")


@router.post("/password-reset/confirm")
async def confirm_password_reset(
    request: PasswordResetConfirmRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Redeem a reset code and set a new password"""
    try:
        await auth_service.confirm_password_reset(request.code, request.new_password)
        return {"success": True}
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Password reset confirm error: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Password reset failed")


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(current_user: Identity = Depends(get_current_user)):
    """Current user profile (validates bearer token)"""
    return UserResponse(
        uid=current_user.uid,
        email=current_user.email,
        name=current_user.name,
    )
