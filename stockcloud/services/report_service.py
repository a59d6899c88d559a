"""
Report Service - movement reports as Excel workbooks
"""

import logging
from datetime import timezone
from io import BytesIO
from typing import Any, Dict, List

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill

from stockcloud.errors import ValidationFailed
from stockcloud.models import AdjustmentKind, MovementKind
from stockcloud.repositories import MovementRepository
from stockcloud.utils.time_utils import business_timezone, local_day_bounds, parse_day

logger = logging.getLogger(__name__)

REPORT_KINDS = ('sale', 'purchase', 'shortage', 'overage', 'all')

COLUMNS = {
    'sale': [
        ('movement_id', 'Movement'), ('date', 'Date'), ('user', 'User'), ('document', 'Document'),
        ('customer', 'Customer'), ('customer_id', 'DNI/RUC'), ('product', 'Product'),
        ('quantity', 'Quantity'), ('unit_price', 'Unit price'), ('subtotal', 'Subtotal'),
        ('total', 'Sale total'),
    ],
    'purchase': [
        ('movement_id', 'Movement'), ('date', 'Date'), ('user', 'User'), ('supplier', 'Supplier'),
        ('order_id', 'Order'), ('product', 'Product'), ('quantity', 'Quantity'),
        ('unit_price', 'Unit price'), ('subtotal', 'Subtotal'), ('total', 'Purchase total'),
    ],
    'shortage': [
        ('movement_id', 'Movement'), ('date', 'Date'), ('user', 'User'), ('reason', 'Reason'),
        ('product', 'Product'), ('quantity', 'Quantity'), ('unit_price', 'Unit price'),
        ('subtotal', 'Subtotal'),
    ],
}
COLUMNS['overage'] = COLUMNS['shortage']

SHEET_TITLES = {
    'sale': 'Sales',
    'purchase': 'Purchases',
    'shortage': 'Shortages',
    'overage': 'Overages',
}

HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
HEADER_ALIGNMENT = Alignment(horizontal="center", vertical="center")
MONEY_FIELDS = ('unit_price', 'subtotal', 'total')


class ReportService:
    """Builds movement spreadsheets for an inclusive range of local days"""

    def __init__(self, movement_repo=None):
        self.movement_repo = movement_repo or MovementRepository()

    def _movements(self, kind: str, start, end):
        if kind == 'sale':
            return self.movement_repo.list_kind_between(MovementKind.SALE, start, end)
        if kind == 'purchase':
            return self.movement_repo.list_kind_between(MovementKind.PURCHASE, start, end)
        return self.movement_repo.list_adjustments_between(AdjustmentKind(kind), start, end)

    def rows(self, kind: str, start_day, end_day) -> List[Dict[str, Any]]:
        """One row per movement line"""
        start, _ = local_day_bounds(start_day)
        _, end = local_day_bounds(end_day)
        tz = business_timezone()

        rows = []
        for movement in self._movements(kind, start, end):
            base = {
                'movement_id': movement.id,
                'date': _localize(movement.occurred_at, tz),
                'user': movement.user.username if movement.user else None,
            }
            if movement.sale:
                customer = movement.sale.customer
                base.update({
                    'document': movement.sale.document_number,
                    'customer': (customer.business_name or customer.name) if customer else None,
                    'customer_id': (customer.tax_id or customer.national_id) if customer else None,
                    'total': float(movement.sale.total),
                })
            if movement.purchase:
                base.update({
                    'supplier': movement.purchase.supplier.business_name if movement.purchase.supplier else None,
                    'order_id': movement.purchase.order_id,
                    'total': float(movement.purchase.total),
                })
            if movement.adjustment:
                base['reason'] = movement.adjustment.reason

            for line in movement.lines:
                rows.append({
                    **base,
                    'product': line.product.name if line.product else None,
                    'quantity': line.quantity,
                    'unit_price': float(line.unit_price),
                    'subtotal': float(line.subtotal),
                })
        return rows

    def export(self, kind: str, start_day, end_day) -> bytes:
        """Workbook bytes; kind 'all' yields one sheet per movement kind"""
        if kind not in REPORT_KINDS:
            raise ValidationFailed(f"Unknown report kind {kind}", allowed=list(REPORT_KINDS))

        start_day, end_day = parse_day(start_day), parse_day(end_day)
        if start_day > end_day:
            raise ValidationFailed("start date must not be after end date")

        try:
            wb = Workbook()
            wb.remove(wb.active)

            kinds = [k for k in REPORT_KINDS if k != 'all'] if kind == 'all' else [kind]
            for sheet_kind in kinds:
                ws = wb.create_sheet(SHEET_TITLES[sheet_kind])
                self._write_sheet(ws, COLUMNS[sheet_kind], self.rows(sheet_kind, start_day, end_day))

            buffer = BytesIO()
            wb.save(buffer)
            logger.info(f"Built {kind} report for {start_day} to {end_day}")
            return buffer.getvalue()

        except Exception as e:
            logger.error(f"Error creating Excel report: {str(e)}")
            raise

    @staticmethod
    def _write_sheet(ws, columns, rows):
        for col, (_, title) in enumerate(columns, 1):
            cell = ws.cell(row=1, column=col, value=title)
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
            cell.alignment = HEADER_ALIGNMENT

        for row_index, row in enumerate(rows, 2):
            for col, (field, _) in enumerate(columns, 1):
                cell = ws.cell(row=row_index, column=col, value=row.get(field))
                if field in MONEY_FIELDS:
                    cell.number_format = '#,##0.00'

        # Auto-adjust column widths
        for column in ws.columns:
            width = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column)
            ws.column_dimensions[column[0].column_letter].width = min(width + 2, 50)


def _localize(value, tz) -> str:
    return value.replace(tzinfo=timezone.utc).astimezone(tz).strftime('%Y-%m-%d %H:%M')
