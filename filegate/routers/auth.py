from typing import Optional

from fastapi import APIRouter, Depends, status

from filegate.dependencies import get_bearer_token, get_identity_verifier, get_session_gateway
from filegate.schemas.user_schema import LoginRequest, LoginResponse, MessageResponse, UserResponse
from filegate.services.gateway import AuthorizationGateway
from filegate.services.identity import IdentityVerifier

router = APIRouter()


@router.post("/login", response_model=LoginResponse, summary="User login with an identity provider token",
             description="""
                Verifies the ID token issued by the identity provider, creates the local user
                on first login and returns a signed session token with its expiry.
             """,
             responses={
                 401: {"description": "Invalid identity assertion",
                       "content": {
                           "application/json": {
                               "examples": {
                                   "invalid": {"value": {"detail": "Identity assertion signature mismatch"}},
                                   "expired": {"value": {"detail": "Identity assertion expired"}},
                               }
                           }
                       }
                       },
                 409: {"description": "Email already registered to another identity"},
                 503: {"description": "Identity provider or user store unavailable"},
             })
def login_user(request: LoginRequest,
               gateway: AuthorizationGateway = Depends(get_session_gateway),
               verifier: IdentityVerifier = Depends(get_identity_verifier)):
    result = gateway.login(request.identity_assertion, verifier)
    return LoginResponse(
        token=result.token,
        token_type="bearer",
        expires_at=result.expires_at,
        user=UserResponse.model_validate(result.user),
    )


@router.post("/logout",
             response_model=MessageResponse,
             summary="Logging out of your user account",
             description="""
                            Revokes the presented session token. The token is rejected by every
                            endpoint from then on, even before its natural expiry.
                          """,
             responses={
                 401: {"description": "Token is invalid, expired or already revoked"},
                 200: {"description": "User logged out successfully"},
             },
             status_code=status.HTTP_200_OK)
def logout(token: Optional[str] = Depends(get_bearer_token),
           gateway: AuthorizationGateway = Depends(get_session_gateway)):
    gateway.logout(token)
    return {"detail": "User logged out successfully"}
