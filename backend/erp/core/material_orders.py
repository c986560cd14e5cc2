"""Material Orders — pure validation and shaping of supplier/logistics orders.

Invariants:
    - Product lines without a name are dropped; non-numeric quantities become 0
    - Supplier email, subject, body, products and source budgets are required
    - Logistics email recorded only with recipients and a body
    - Recipient = first logistics recipient, else supplier email
    - CC = unique union of supplier CC and logistics CC, supplier first
"""

from dataclasses import dataclass
from typing import Any

from erp.core.errors import RequestValidationFailed
from erp.core.normalize import (
    clean_text, normalize_email, normalize_email_list, normalize_text_list,
    to_finite_number,
)

DEFAULT_LOGISTICS_SUBJECT = "Uso de stock desde ERP"


@dataclass
class OrderProduct:
    product_name: str
    supplier_quantity: float
    stock_quantity: float
    total_label: str | None = None

    def to_dict(self) -> dict:
        return {
            "productName": self.product_name,
            "supplierQuantity": self.supplier_quantity,
            "stockQuantity": self.stock_quantity,
            "totalLabel": self.total_label,
        }


@dataclass
class OrderEmail:
    to: str | list[str]
    cc: list[str]
    subject: str
    body: str

    def to_dict(self) -> dict:
        return {"to": self.to, "cc": self.cc, "subject": self.subject, "body": self.body}


@dataclass
class MaterialOrderDraft:
    supplier_name: str | None
    supplier_email: str
    products: list[OrderProduct]
    source_budget_ids: list[str]
    supplier_message: OrderEmail
    logistics_message: OrderEmail | None
    recipient_email: str
    cc_emails: list[str]
    notes: str | None = None
    order_number: int | None = None

    def products_payload(self) -> dict:
        """Stored JSON: product lines plus the emails the order produced."""
        return {
            "items": [p.to_dict() for p in self.products],
            "emails": {
                "supplier": self.supplier_message.to_dict(),
                "logistics": (
                    self.logistics_message.to_dict()
                    if self.logistics_message else None
                ),
            },
        }


def _quantity(value: Any) -> float:
    number = to_finite_number(value if value is not None else 0)
    return number if number is not None else 0


def normalize_products(value: Any) -> list[OrderProduct]:
    if not isinstance(value, list):
        return []
    products = []
    for entry in value:
        if not isinstance(entry, dict):
            continue
        name = clean_text(entry.get("productName"))
        if not name:
            continue
        products.append(OrderProduct(
            product_name=name,
            supplier_quantity=_quantity(entry.get("supplierQuantity")),
            stock_quantity=_quantity(entry.get("stockQuantity")),
            total_label=clean_text(entry.get("totalLabel")),
        ))
    return products


def _parse_order_number(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = to_finite_number(value)
        if number is None:
            return None
        if number <= 0 or number != int(number):
            raise RequestValidationFailed("Número de pedido inválido", "orderNumber")
        return int(number)
    return None


def merge_emails(*sources: list[str]) -> list[str]:
    merged: list[str] = []
    for source in sources:
        for email in source:
            if email not in merged:
                merged.append(email)
    return merged


def build_order_draft(payload: dict) -> MaterialOrderDraft:
    """Validate a raw order request. Raises RequestValidationFailed."""
    supplier_email = normalize_email(payload.get("supplierEmail"))
    supplier_subject = clean_text(payload.get("supplierSubject"))
    supplier_body = clean_text(payload.get("supplierBody"))
    supplier_cc = normalize_email_list(payload.get("supplierCc"))
    logistics_to = normalize_email_list(payload.get("logisticsTo"))
    logistics_cc = normalize_email_list(payload.get("logisticsCc"))
    logistics_subject = (
        clean_text(payload.get("logisticsSubject")) or DEFAULT_LOGISTICS_SUBJECT
    )
    logistics_body = clean_text(payload.get("logisticsBody"))

    if not supplier_email:
        raise RequestValidationFailed(
            "El correo del proveedor es obligatorio", "supplierEmail",
        )
    if not supplier_subject or not supplier_body:
        raise RequestValidationFailed(
            "Asunto y cuerpo del correo al proveedor son obligatorios",
            "supplierBody",
        )
    products = normalize_products(payload.get("products"))
    if not products:
        raise RequestValidationFailed(
            "Debes incluir al menos un producto en el pedido", "products",
        )
    budget_ids = normalize_text_list(payload.get("sourceBudgetIds"))
    if not budget_ids:
        raise RequestValidationFailed(
            "Falta el identificador del presupuesto origen", "sourceBudgetIds",
        )

    logistics_message = None
    if logistics_to and logistics_body:
        logistics_message = OrderEmail(
            to=logistics_to, cc=logistics_cc,
            subject=logistics_subject, body=logistics_body,
        )

    return MaterialOrderDraft(
        supplier_name=clean_text(payload.get("supplierName")),
        supplier_email=supplier_email,
        products=products,
        source_budget_ids=budget_ids,
        supplier_message=OrderEmail(
            to=supplier_email, cc=supplier_cc,
            subject=supplier_subject, body=supplier_body,
        ),
        logistics_message=logistics_message,
        recipient_email=logistics_to[0] if logistics_to else supplier_email,
        cc_emails=merge_emails(supplier_cc, logistics_cc),
        notes=clean_text(payload.get("notes")),
        order_number=_parse_order_number(payload.get("orderNumber")),
    )


def next_order_number(current_max: int | None) -> int:
    return (current_max or 0) + 1
