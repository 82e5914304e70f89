"""ERP entity sets exposed through the gateway."""

from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping

from erp_gateway.errors import ConfigurationError

# logical name -> OData entity set (case-sensitive upstream)
ENTITY_SETS: Dict[str, str] = {
    "customers": "Customers",
    "customerTemplates": "CustomerTemplate",
    "salesInvoices": "SalesInvoices",
    "postedSalesInvoices": "PostedSalesInvoices",
    "salesInvoiceLines": "SalesInvoiceLines",
    "postedSalesInvoiceLines": "PostedSalesInvoiceLines",
    "items": "Items",
    "salesQuote": "salesQuote",
    "salesQuotes": "salesQuote",
    "salesQuoteLines": "SalesQuoteLines",
    "salesCreditMemo": "SalesCreditMemos",
    "salesCreditMemoLines": "SalesCreditMemoLines",
    "contacts": "Contacts",
    "SalesOrder": "SalesOrder",
    "SalesOrderLines": "SalesOrderLines",
    "itemLedgerEntries": "ItemLedgerEntries",
    "customerLedgerEntries": "CustomerLedgerEntries",
    "paymentTerms": "PaymentTerms",
    "paymentMethods": "PaymentMethod",
    "countries": "Countries",
    "customerPostingGroups": "CustomerPostingGroups",
    "vatBusinessPostingGroups": "VATBusinessPostingGroups",
    "genBusinessPostingGroups": "GenBusinessPostingGroups",
    "locations": "Locations",
    "shipmentMethods": "ShipmentMethods",
    "shippingAgents": "ShippingAgents",
    "currencies": "Currencies",
    "customerPriceGroups": "CustomerPriceGroups",
    "customerDiscountGroups": "CustomerDiscountGroups",
    "salespersons": "Salesperson",
    "responsibilityCenters": "ResponsibilityCenters",
}


class EndpointTable(Mapping):
    """Read-only mapping of logical entity name to absolute base URL."""

    def __init__(self, company_url: str, entity_sets: Mapping[str, str] = ENTITY_SETS):
        base = company_url.rstrip("/")
        self.company_url = base
        self._urls = MappingProxyType({k: f"{base}/{v}" for k, v in entity_sets.items()})

    def __getitem__(self, key: str) -> str:
        try:
            return self._urls[key]
        except KeyError:
            raise ConfigurationError(f"No ERP endpoint configured for '{key}'") from None

    def __contains__(self, key: object) -> bool:
        return key in self._urls

    def __iter__(self) -> Iterator[str]:
        return iter(self._urls)

    def __len__(self) -> int:
        return len(self._urls)

    def listing(self) -> List[Dict[str, str]]:
        return [{"name": k, "url": v} for k, v in self._urls.items()]
