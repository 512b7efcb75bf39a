from decimal import Decimal

from django.db.models import Count, Q, Sum
from django.utils import timezone
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.models import User
from accounts.permissions import IsAdmin, IsStaffMember
from billing.models import Bill, Collection
from billing.serializers import CollectionSerializer

ZERO = Decimal('0.00')


class AdminDashboardView(APIView):
    """
    Admin dashboard

    GET /api/dashboard/admin

    Returns:
    - Amount and outstanding of bills due today
    - Amount collected today
    - Bill counts by status
    - Number of staff members
    - Five most recent collections
    """
    permission_classes = [IsAdmin]

    def get(self, request):
        today = timezone.localdate()

        # ===== BILLS DUE TODAY =====
        due_today = Bill.objects.filter(due_date=today).aggregate(
            total_amount=Sum('amount'),
            remaining=Sum('due_amount'),
            count=Count('id'),
        )

        # ===== COLLECTIONS TODAY =====
        collected_today = Collection.objects.filter(collected_on__date=today).aggregate(
            total=Sum('amount_collected'),
            count=Count('id'),
        )

        # ===== BILL STATUS =====
        status_counts = Bill.objects.aggregate(
            paid=Count('id', filter=Q(status=Bill.STATUS_PAID)),
            unpaid=Count('id', filter=Q(status=Bill.STATUS_UNPAID)),
            partially_paid=Count('id', filter=Q(status=Bill.STATUS_PARTIALLY_PAID)),
            overdue=Count('id', filter=Q(due_date__lt=today) & ~Q(status=Bill.STATUS_PAID)),
        )

        # ===== RECENT COLLECTIONS =====
        recent = (
            Collection.objects.select_related('bill', 'collected_by')
            .order_by('-collected_on')[:5]
        )

        return Response({
            'total_bill_amount':      due_today['total_amount'] or ZERO,
            'total_remaining_amount': due_today['remaining'] or ZERO,
            'bills_due_today':        due_today['count'],
            'total_paid_amount':      collected_today['total'] or ZERO,
            'collections_today':      collected_today['count'],
            'bills_by_status':        status_counts,
            'total_staff':            User.objects.filter(role=User.ROLE_STAFF, is_active=True).count(),
            'recent_collections':     CollectionSerializer(recent, many=True).data,
            'generated_at':           timezone.now().isoformat(),
        })


class StaffDashboardView(APIView):
    """
    Staff dashboard

    GET /api/dashboard/staff

    Totals for the bills assigned to the current staff member today: the
    amount assigned, what was collected on them today and what is left.
    """
    permission_classes = [IsStaffMember]

    def get(self, request):
        today = timezone.localdate()
        assigned = Bill.objects.filter(assigned_to=request.user, assigned_date__date=today)

        totals = assigned.aggregate(
            assigned_amount=Sum('amount'),
            remaining=Sum('due_amount'),
            count=Count('id'),
        )
        collected = Collection.objects.filter(
            bill__in=assigned,
            collected_on__date=today,
        ).aggregate(total=Sum('amount_collected'))

        return Response({
            'today_amount_assigned':   totals['assigned_amount'] or ZERO,
            'today_amount_collected':  collected['total'] or ZERO,
            'amount_remaining_today':  totals['remaining'] or ZERO,
            'bills_assigned_today':    totals['count'],
            'pending_bills':           Bill.objects.filter(assigned_to=request.user)
                                           .exclude(status=Bill.STATUS_PAID).count(),
        })
