from dataclasses import dataclass

from cuotas.models import MONTHLY_FEE


@dataclass
class DashboardStats:
    total_participants: int = 0
    paid_this_month: int = 0
    pending_this_month: int = 0
    total_collected: float = 0
    total_pending: float = 0

    @property
    def payment_rate(self) -> int:
        if self.total_participants <= 0:
            return 0
        return round(self.paid_this_month / self.total_participants * 100)


@dataclass
class ManagementStats:
    total_participants: int = 0
    active_participants: int = 0
    inactive_participants: int = 0
    total_payments: int = 0
    total_amount: float = 0


def dashboard_stats(active_participants, payments, current_month, monthly_fee=MONTHLY_FEE):
    """
    Resumen del mes `current_month` (YYYY-MM).

    Pagaron = participantes activos distintos con algún pago ese mes.
    Por cobrar = pendientes del mes x cuota mensual.
    """
    active_ids = {p.id for p in active_participants}
    paid_ids = {
        p.participant_id
        for p in payments
        if p.month == current_month and p.participant_id in active_ids
    }
    total = len(active_ids)
    pending = total - len(paid_ids)

    return DashboardStats(
        total_participants=total,
        paid_this_month=len(paid_ids),
        pending_this_month=pending,
        total_collected=sum(p.amount for p in payments),
        total_pending=pending * monthly_fee,
    )


def management_stats(participants, payments):
    active = sum(1 for p in participants if p.is_active)
    return ManagementStats(
        total_participants=len(participants),
        active_participants=active,
        inactive_participants=len(participants) - active,
        total_payments=len(payments),
        total_amount=sum(p.amount for p in payments),
    )
