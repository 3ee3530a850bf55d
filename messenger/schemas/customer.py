from pydantic import BaseModel


class CustomerCreate(BaseModel):

    user: str
