"""OAuth schemas."""

from pydantic import BaseModel, ConfigDict, Field

from storefront.models.account import Account


class OAuthCallbackRequest(BaseModel):
    """Authorization code relayed by the browser client."""

    code: str | None = None


class OAuthMobileRequest(BaseModel):
    """Provider ID token presented by a native client."""

    model_config = ConfigDict(populate_by_name=True)

    token_id: str | None = Field(default=None, alias="tokenId")
    provider: str | None = None


class AccountSummary(BaseModel):
    id: str
    name: str
    email: str
    avatar: str | None = None
    role: str
    provider: str | None = None

    @classmethod
    def from_account(cls, account: Account) -> "AccountSummary":
        return cls(
            id=str(account.id),
            name=account.display_name,
            email=account.email,
            avatar=account.avatar_url,
            role=account.role,
            provider=account.provider,
        )


class OAuthLoginResponse(BaseModel):
    success: bool = True
    user: AccountSummary
    access_token: str = Field(..., serialization_alias="accessToken")
    refresh_token: str = Field(..., serialization_alias="refreshToken")
