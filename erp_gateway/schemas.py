from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class CreateCustomerReq(BaseModel):
    # all optional so missing fields can be reported together
    Name: Optional[str] = None
    Address: Optional[str] = None
    City: Optional[str] = None
    Post_Code: Optional[str] = None
    Country_Region_Code: Optional[str] = None
    Contact: Optional[str] = None
    Phone_No: Optional[str] = None
    E_Mail: Optional[str] = None
    CustomerTemplateCode: Optional[str] = None


class CreateCustomerOut(BaseModel):
    success: bool = True
    customerNo: str
    message: str = "Customer created successfully"


class CreateSalesInvoiceReq(BaseModel):
    header: Dict[str, Any]
    lines: List[Dict[str, Any]] = []


class CustomerTemplateOut(BaseModel):
    code: Optional[str] = None
    description: Optional[str] = None
    contactType: Optional[str] = None
