from collections import defaultdict
from decimal import Decimal

from django.db.models import Count, Prefetch, Sum
from django.utils import timezone
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.models import User
from accounts.permissions import IsAdmin
from billing.models import Bill, Collection
from retailers.models import Retailer
from utils.dates import parse_date, parse_date_range
from utils.excel_export import xlsx_response

ZERO = Decimal('0.00')

DATE_RANGE_PARAMETERS = [
    OpenApiParameter('start_date', str, description="Bill date from (YYYY-MM-DD)"),
    OpenApiParameter('end_date', str, description="Bill date to (YYYY-MM-DD)"),
]

COLLECTION_REPORT_COLUMNS = [
    # header,               width, money
    ('Bill Number',           20, False),
    ('Retailer',              30, False),
    ('Bill Date',             15, False),
    ('Bill Amount',           15, True),
    ('Due Amount',            15, True),
    ('Status',                15, False),
    ('Assigned To',           20, False),
    ('Collection Amount',     20, True),
    ('Payment Mode',          15, False),
    ('Payment Date',          15, False),
    ('Collected By',          20, False),
    ('Payment Details',       40, False),
]


def format_payment_details(details):
    if not details:
        return ''
    return ', '.join(f"{key}: {value}" for key, value in details.items())


def collection_row(collection):
    return {
        'id':                collection.id,
        'amount_collected':  collection.amount_collected,
        'payment_mode':      collection.payment_mode,
        'payment_date':      collection.collected_on,
        'payment_details':   collection.payment_details,
        'collected_by_name': collection.collected_by.name,
    }


def bill_row(bill, collections):
    return {
        'id':               bill.id,
        'bill_number':      bill.bill_number,
        'retailer':         bill.retailer_name,
        'bill_date':        bill.bill_date,
        'amount':           bill.amount,
        'due_amount':       bill.due_amount,
        'status':           bill.status,
        'assigned_to_name': bill.assigned_to_name or None,
        'collections':      [collection_row(c) for c in collections],
    }


def export_rows(bills_with_collections):
    """One spreadsheet row per collection; bills without collections get one row"""
    rows = []
    for bill, collections in bills_with_collections:
        head = [
            bill.bill_number,
            bill.retailer_name,
            bill.bill_date.strftime('%d/%m/%Y'),
            bill.amount,
            bill.due_amount,
            bill.status,
            bill.assigned_to_name or 'Not assigned',
        ]
        if not collections:
            rows.append(head + ['No collections', '', '', '', ''])
            continue
        for c in collections:
            rows.append(head + [
                c.amount_collected,
                c.payment_mode,
                timezone.localtime(c.collected_on).strftime('%d/%m/%Y'),
                c.collected_by.name,
                format_payment_details(c.payment_details),
            ])
    return rows


class ReportsBaseView(APIView):
    """Base class for all reports"""
    permission_classes = [IsAdmin]

    def parse_date_range(self, request):
        """(start, end) bill dates; no filter on a side that is not given"""
        return parse_date_range(request.query_params)


# ============================================================================
# 1. BILL / COLLECTION REPORT
# ============================================================================

class BillsReportView(ReportsBaseView):
    """
    Bills with their collections

    GET /api/reports/bills?start_date=2026-01-01&end_date=2026-01-31
    """

    def get_bills(self, request):
        start_date, end_date = self.parse_date_range(request)
        bills = Bill.objects.prefetch_related(
            Prefetch('collections', queryset=Collection.objects.select_related('collected_by'))
        ).order_by('-bill_date', 'bill_number')
        if start_date:
            bills = bills.filter(bill_date__gte=start_date)
        if end_date:
            bills = bills.filter(bill_date__lte=end_date)
        return bills

    @extend_schema(parameters=DATE_RANGE_PARAMETERS, summary="Bills report")
    def get(self, request):
        bills = self.get_bills(request)
        rows = [bill_row(bill, bill.collections.all()) for bill in bills]

        summary = bills.aggregate(
            total_amount=Sum('amount'),
            total_due=Sum('due_amount'),
            count=Count('id'),
        )
        total_amount = summary['total_amount'] or ZERO
        total_due = summary['total_due'] or ZERO

        return Response({
            'summary': {
                'total_bills':   summary['count'],
                'total_amount':  total_amount,
                'total_due':     total_due,
                'total_settled': total_amount - total_due,
            },
            'bills': rows,
        })


class BillsReportExportView(BillsReportView):
    """
    GET /api/reports/bills/export?start_date=&end_date=   – Excel download
    """

    @extend_schema(parameters=DATE_RANGE_PARAMETERS, summary="Export bills report to Excel")
    def get(self, request):
        bills = self.get_bills(request)
        rows = export_rows((bill, list(bill.collections.all())) for bill in bills)
        return xlsx_response(
            COLLECTION_REPORT_COLUMNS, rows, 'collections_report', sheet_title='Collections Report'
        )


# ============================================================================
# 2. TODAY'S COLLECTIONS
# ============================================================================

class TodayCollectionsView(ReportsBaseView):
    """
    Bills that received a payment today, with only today's collections

    GET /api/reports/today-collections
    """

    def get_bills_with_collections(self):
        today = timezone.localdate()
        collections = (
            Collection.objects.filter(collected_on__date=today)
            .select_related('bill', 'collected_by')
            .order_by('collected_on')
        )

        grouped = defaultdict(list)
        bills = {}
        for collection in collections:
            grouped[collection.bill_id].append(collection)
            bills[collection.bill_id] = collection.bill

        ordered = sorted(bills.values(), key=lambda b: (b.bill_date, b.bill_number), reverse=True)
        return [(bill, grouped[bill.id]) for bill in ordered]

    def get(self, request):
        pairs = self.get_bills_with_collections()
        total = sum((c.amount_collected for _, cs in pairs for c in cs), ZERO)
        return Response({
            'date':            timezone.localdate(),
            'total_collected': total,
            'bills':           [bill_row(bill, collections) for bill, collections in pairs],
        })


class TodayCollectionsExportView(TodayCollectionsView):
    """
    GET /api/reports/today-collections/export   – Excel download
    """

    def get(self, request):
        rows = export_rows(self.get_bills_with_collections())
        return xlsx_response(
            COLLECTION_REPORT_COLUMNS, rows, 'today_collections', sheet_title="Today's Collections"
        )


# ============================================================================
# 3. DSR COLLECTION SUMMARY
# ============================================================================

class DSRSummaryView(ReportsBaseView):
    """
    Daily collection summary per staff member

    GET /api/reports/dsr-summary?date=2026-01-31   (defaults to today)

    For every active staff member: total collected that day, retailers
    assigned to them, distinct retailers collected from, and amount/count
    per payment mode.
    """

    @extend_schema(
        parameters=[OpenApiParameter('date', str, description="Day to summarise (YYYY-MM-DD)")],
        summary="DSR collection summary",
    )
    def get(self, request):
        day = parse_date(request.query_params.get('date'), 'date') or timezone.localdate()

        by_mode = (
            Collection.objects.filter(collected_on__date=day)
            .values('collected_by', 'payment_mode')
            .annotate(amount=Sum('amount_collected'), count=Count('id'))
        )
        retailers_collected = (
            Collection.objects.filter(collected_on__date=day)
            .values('collected_by')
            .annotate(retailers=Count('bill__retailer_name', distinct=True))
        )
        assigned_retailers = (
            Retailer.objects.filter(assigned_to__isnull=False)
            .values('assigned_to')
            .annotate(count=Count('id'))
        )

        modes = defaultdict(dict)
        for row in by_mode:
            modes[row['collected_by']][row['payment_mode']] = {
                'amount': row['amount'],
                'count':  row['count'],
            }
        collected_count = {row['collected_by']: row['retailers'] for row in retailers_collected}
        assigned_count = {row['assigned_to']: row['count'] for row in assigned_retailers}

        staff_rows = []
        grand_total = ZERO
        for staff in User.objects.filter(role=User.ROLE_STAFF, is_active=True).order_by('name'):
            staff_modes = {
                mode: modes[staff.id].get(mode, {'amount': ZERO, 'count': 0})
                for mode, _ in Collection.PAYMENT_MODE_CHOICES
            }
            total = sum((m['amount'] for m in staff_modes.values()), ZERO)
            grand_total += total
            staff_rows.append({
                'staff_id':             staff.id,
                'staff_name':           staff.name,
                'total_collected':      total,
                'assigned_retailers':   assigned_count.get(staff.id, 0),
                'collected_retailers':  collected_count.get(staff.id, 0),
                'by_payment_mode':      staff_modes,
            })

        return Response({
            'date':            day,
            'total_collected': grand_total,
            'staff':           staff_rows,
        })
