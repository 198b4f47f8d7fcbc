from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileAllowed, FileRequired
from wtforms import StringField, PasswordField, SelectField, TextAreaField, IntegerField
from wtforms.validators import AnyOf, DataRequired, Email, Length, Optional
from coffee_erp.constants import ApprovalStage, PaymentMethod, RequestType, Role, MODIFICATION_REASONS

# Amounts stay strings here; coffee_erp.money.parse_amount owns precision rules.

# --- AUTH FORMS ---

class LoginForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(), Email()])
    password = PasswordField('Password', validators=[DataRequired()])


# --- APPROVAL FORMS ---

class ApprovalRequestForm(FlaskForm):
    type = SelectField('Request Type', choices=[(t, t) for t in RequestType.ALL],
                       default=RequestType.EXPENSE, validators=[DataRequired()])
    title = StringField('Title', validators=[DataRequired(), Length(max=200)])
    description = TextAreaField('Description', validators=[Optional()])
    department = StringField('Department', validators=[Optional(), Length(max=50)])
    priority = SelectField('Priority', choices=[('Low', 'Low'), ('Medium', 'Medium'), ('High', 'High'), ('Urgent', 'Urgent')],
                           default='Medium', validators=[Optional()])
    amount = StringField('Amount', validators=[DataRequired()])
    currency = StringField('Currency', validators=[Optional(), Length(min=3, max=3)],
                           filters=[lambda x: x.upper() if x else None])


class ApproveForm(FlaskForm):
    stage = StringField('Stage', validators=[Optional(), AnyOf(ApprovalStage.ORDER)])
    comments = TextAreaField('Comments', validators=[Optional()])


class RejectForm(FlaskForm):
    reason = StringField('Reason', validators=[DataRequired(message="Rejection reason is required")])
    comments = TextAreaField('Comments', validators=[Optional()])


# --- FINANCE FORMS ---

class PaymentForm(FlaskForm):
    supplier = StringField('Supplier', validators=[DataRequired(), Length(max=120)])
    batch_number = StringField('Batch Number', validators=[Optional(), Length(max=50)])
    department = StringField('Paying Department', validators=[Optional(), Length(max=50)])
    amount = StringField('Amount', validators=[DataRequired()])
    currency = StringField('Currency', validators=[Optional(), Length(min=3, max=3)],
                           filters=[lambda x: x.upper() if x else None])
    notes = TextAreaField('Notes', validators=[Optional()])


class ProcessPaymentForm(FlaskForm):
    method = SelectField('Method', choices=[(m, m) for m in PaymentMethod.ALL], validators=[DataRequired()])
    amount = StringField('Amount', validators=[Optional()])
    notes = TextAreaField('Notes', validators=[Optional()])


class DepositForm(FlaskForm):
    department = StringField('Department', validators=[DataRequired()])
    amount = StringField('Amount', validators=[DataRequired()])
    reference = StringField('Reference', validators=[Optional(), Length(max=50)])
    notes = TextAreaField('Notes', validators=[Optional()])


class ExpenseForm(FlaskForm):
    department = StringField('Department', validators=[DataRequired()])
    amount = StringField('Amount', validators=[DataRequired()])
    category = StringField('Category', validators=[DataRequired()])
    description = StringField('Description', validators=[DataRequired()])
    reference = StringField('Reference', validators=[Optional(), Length(max=50)])
    notes = TextAreaField('Notes', validators=[Optional()])


class ProofForm(FlaskForm):
    proof = FileField('Proof of Payment', validators=[
        FileRequired(message="A proof file is required"),
        FileAllowed(['pdf', 'jpg', 'jpeg', 'png'], 'Images/PDF only!')
    ])


# --- MODIFICATION FORMS ---

class ModificationForm(FlaskForm):
    payment_id = IntegerField('Payment', validators=[DataRequired()])
    target_department = StringField('Send To', validators=[DataRequired()])
    reason = SelectField('Reason', choices=list(MODIFICATION_REASONS.items()), validators=[DataRequired()])
    comments = TextAreaField('Comments', validators=[Optional()])


class ForwardForm(FlaskForm):
    target_department = StringField('Forward To', validators=[DataRequired()])
    reason = StringField('Reason', validators=[DataRequired()])
    comments = TextAreaField('Comments', validators=[Optional()])


# --- ADMIN FORMS ---

class UserForm(FlaskForm):
    id = IntegerField('User', validators=[Optional()])
    name = StringField('Name', validators=[DataRequired()])
    email = StringField('Email', validators=[DataRequired(), Email()])
    dept = StringField('Department', validators=[Optional()])
    role = SelectField('Role', choices=[(r, r) for r in Role.ALL], default=Role.STAFF)
    password = PasswordField('Password', validators=[Optional(), Length(min=6)])


class DepartmentForm(FlaskForm):
    name = StringField('Department', validators=[DataRequired(), Length(max=50)])
