from pydantic import BaseModel, ConfigDict, Field


class PaymentInitDTO(BaseModel):
    """Handle returned by the payment provider for a hosted transaction."""
    model_config = ConfigDict(populate_by_name=True)

    access_code: str | None = None
    authorization_url: str | None = None
    reference: str | None = None
    public_key: str | None = Field(None, serialization_alias="publicKey")
