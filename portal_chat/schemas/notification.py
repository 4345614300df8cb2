from typing import Literal, Optional

from pydantic import BaseModel, Field


class PaymentRequestIn(BaseModel):

    payment_id: str
    amount: float = Field(gt=0)
    installer_name: str = Field(min_length=1)


class PaymentCommentIn(BaseModel):

    payment_id: str
    user_name: str = Field(min_length=1)
    user_type: Literal["installer", "admin"]
    comment: str = Field(min_length=1)


class SerialSubmissionIn(BaseModel):

    serial_number: str = Field(min_length=1)
    installer_name: str = Field(min_length=1)
    inverter_model: Optional[str] = None


class NewInstallerIn(BaseModel):

    installer_id: str
    installer_name: str = Field(min_length=1)
    city: Optional[str] = None
