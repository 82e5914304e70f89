"""
SOAP customer creation.

The ERP exposes customer creation only through the WebCustomerAPI codeunit.
The envelope is a fixed template; the response carries the new customer
number in a single <return_value> element.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from erp_gateway.client import ERPClient, is_success
from erp_gateway.errors import BackendError, CallerError

logger = logging.getLogger(__name__)

SOAP_NS = "urn:microsoft-dynamics-schemas/codeunit/WebCustomerAPI"
SOAP_ACTION = f"{SOAP_NS}:CreateCustomer"

# inbound JSON field -> SOAP element, in envelope order
CUSTOMER_FIELDS: List[Tuple[str, str]] = [
    ("Name", "name"),
    ("Address", "address"),
    ("City", "city"),
    ("Post_Code", "postCode"),
    ("Country_Region_Code", "countryCode"),
    ("Phone_No", "phoneNo"),
    ("E_Mail", "email"),
    ("CustomerTemplateCode", "customerTemplateCode"),
]

_XML_ENTITIES = [
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
]


def escape_xml(value: Any) -> str:
    s = "" if value is None else str(value)
    for ch, entity in _XML_ENTITIES:
        s = s.replace(ch, entity)
    return s


def missing_fields(fields: Dict[str, Any]) -> List[str]:
    return [name for name, _ in CUSTOMER_FIELDS if not fields.get(name)]


def build_envelope(fields: Dict[str, Any]) -> str:
    body = "\n".join(
        f"      <{tag}>{escape_xml(fields.get(name))}</{tag}>" for name, tag in CUSTOMER_FIELDS
    )
    return f"""<?xml version="1.0" encoding="utf-8"?>
<soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/">
  <soap:Body>
    <CreateCustomer xmlns="{SOAP_NS}">
{body}
    </CreateCustomer>
  </soap:Body>
</soap:Envelope>"""


class ReturnValueExtractor:
    """Pulls the text of the first <return_value> element out of a SOAP response."""

    pattern = re.compile(r"<return_value>(.*?)</return_value>", re.DOTALL)

    def extract(self, xml_text: str) -> Optional[str]:
        m = self.pattern.search(xml_text or "")
        if not m or not m.group(1).strip():
            return None
        return m.group(1).strip()


class CustomerCreator:
    def __init__(self, client: ERPClient, soap_url: str, extractor: Optional[ReturnValueExtractor] = None):
        self.client = client
        self.soap_url = soap_url
        self.extractor = extractor or ReturnValueExtractor()

    def create(self, fields: Dict[str, Any]) -> str:
        missing = missing_fields(fields)
        if missing:
            raise CallerError(
                "Missing required fields",
                details=", ".join(missing),
                extra={"missingFields": missing},
            )

        envelope = build_envelope(fields)
        headers = {
            "Content-Type": "text/xml; charset=utf-8",
            "SOAPAction": SOAP_ACTION,
            "Authorization": self.client.config.auth_header,
        }
        r = self.client.send(self.soap_url, method="POST", data=envelope.encode("utf-8"), headers=headers)
        text = r.text or ""

        if not is_success(r):
            logger.error("SOAP Response Error [%s]: %s", r.status_code, text)
            raise BackendError(
                f"SOAP request failed: HTTP {r.status_code} - {r.reason}",
                upstream_status=r.status_code,
                response=text,
            )

        customer_no = self.extractor.extract(text)
        if customer_no is None:
            logger.error("Invalid SOAP response: %s", text)
            raise BackendError("malformed upstream response", upstream_status=r.status_code, response=text)

        logger.info("Customer created customer_no=%s", customer_no)
        return customer_no
