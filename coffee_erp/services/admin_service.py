from collections import Counter
from sqlalchemy import func
from coffee_erp.extensions import db
from coffee_erp.models import (
    User, Department, ApprovalRequest, CashBalance, ModificationRequest, PaymentRecord
)
from coffee_erp.constants import ModificationStatus, PaymentStatus, Role
from coffee_erp.exceptions import NotFound, WorkflowError
from coffee_erp.services.status_classifier import classify, queue_bucket


def get_dashboard_stats():
    """Calculates all statistics for the admin dashboard."""
    requests = ApprovalRequest.query.all()
    by_bucket = Counter(queue_bucket(r) for r in requests)
    by_label = Counter(classify(r) for r in requests)

    return {
        'users': User.query.count(),
        'total': len(requests),
        'buckets': dict(by_bucket),
        'bottlenecks': dict(by_label),
        'req_by_dept': {
            r[0]: r[1] for r in db.session.query(
                ApprovalRequest.department, func.count(ApprovalRequest.id)
            ).group_by(ApprovalRequest.department).all()
        },
        'payments_outstanding': PaymentRecord.query.filter(
            PaymentRecord.status != PaymentStatus.PAID
        ).count(),
        'open_modifications': ModificationRequest.query.filter_by(
            status=ModificationStatus.PENDING
        ).count(),
        'balances': {b.department: str(b.current_balance) for b in CashBalance.query.all()},
    }


class UserService:
    DEFAULT_PASSWORD = 'pass123'

    @staticmethod
    def create_or_update_user(data):
        """
        Creates a new user or updates an existing one.
        Expects data dictionary with: id, name, email, dept, role, password.
        """
        user_id = data.get('id')
        name = data.get('name')
        email = (data.get('email') or '').strip().lower()
        dept = data.get('dept')
        role = data.get('role') or Role.STAFF

        if not name or not email:
            raise WorkflowError("User Name and Email are mandatory fields.")
        if role not in Role.ALL:
            raise WorkflowError(f"Unknown role: {role}")

        if user_id:
            user = db.session.get(User, user_id)
            if not user:
                raise NotFound("User not found.")
            user.username = name
            user.email = email
            user.department = dept
            user.role = role
        else:
            if User.query.filter_by(email=email).first():
                raise WorkflowError("User with this email already exists.")
            user = User(username=name, email=email, department=dept, role=role)
            user.set_password(data.get('password') or UserService.DEFAULT_PASSWORD)
            db.session.add(user)

        db.session.commit()
        return user

    @staticmethod
    def delete_user(user_id):
        """Deletes a user, protecting admins."""
        user = db.session.get(User, user_id)
        if not user:
            raise NotFound("User not found.")
        if user.role == Role.ADMIN:
            raise WorkflowError("Cannot delete an Administrator.")
        db.session.delete(user)
        db.session.commit()


class DepartmentService:

    @staticmethod
    def add_department(name):
        name = (name or '').strip()
        if not name:
            raise WorkflowError("Department name is required.")
        dept = Department.query.filter_by(name=name).first()
        if not dept:
            dept = Department(name=name)
            db.session.add(dept)
            db.session.commit()
        return dept
