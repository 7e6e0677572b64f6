from wholesale.extensions import db
from flask_login import UserMixin
from datetime import datetime
from sqlalchemy import CheckConstraint
import enum
import json


class UserRole(enum.Enum):
    WHOLESALER = 'wholesaler'
    RETAILER = 'retailer'
    ADMIN = 'admin'


class WholesalerStatus(enum.Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    SUSPENDED = 'suspended'


class RetailerStatus(enum.Enum):
    ACTIVE = 'active'
    SUSPENDED = 'suspended'


class OrderStatus(enum.Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    PREPARING = 'preparing'
    SHIPPING = 'shipping'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'


class SettlementStatus(enum.Enum):
    PENDING = 'pending'
    COMPLETED = 'completed'


class InquiryType(enum.Enum):
    WHOLESALER_TO_ADMIN = 'wholesaler_to_admin'
    RETAILER_TO_WHOLESALER = 'retailer_to_wholesaler'
    RETAILER_TO_ADMIN = 'retailer_to_admin'


class InquiryStatus(enum.Enum):
    OPEN = 'open'
    ANSWERED = 'answered'
    CLOSED = 'closed'


class MessageSenderType(enum.Enum):
    USER = 'user'
    ADMIN = 'admin'
    WHOLESALER = 'wholesaler'


class CSThreadStatus(enum.Enum):
    OPEN = 'open'
    BOT_HANDLED = 'bot_handled'
    ESCALATED = 'escalated'
    ANSWERED = 'answered'
    CLOSED = 'closed'


class CSSenderType(enum.Enum):
    USER = 'user'
    BOT = 'bot'
    ADMIN = 'admin'


class Profile(UserMixin, db.Model):
    __tablename__ = 'profiles'

    id = db.Column(db.Integer, primary_key=True)
    # Subject id issued by the external identity provider.
    external_user_id = db.Column(
        db.String(100),
        unique=True,
        nullable=False,
        index=True)
    email = db.Column(db.String(120), nullable=True, index=True)
    # NULL until onboarding completes; reset to NULL on rejection.
    role = db.Column(db.Enum(UserRole), nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    wholesalers = db.relationship(
        'Wholesaler',
        backref='profile',
        lazy='dynamic',
        cascade='all, delete-orphan',
        passive_deletes=True)
    retailers = db.relationship(
        'Retailer',
        backref='profile',
        lazy='dynamic',
        cascade='all, delete-orphan',
        passive_deletes=True)
    voc_feedbacks = db.relationship(
        'VOCFeedback',
        backref='profile',
        lazy='dynamic',
        cascade='all, delete-orphan',
        passive_deletes=True)

    def __repr__(self):
        return f'<Profile {self.external_user_id} role={self.role}>'


class Wholesaler(db.Model):
    __tablename__ = 'wholesalers'

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'profiles.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    business_name = db.Column(db.String(100), nullable=False)
    status = db.Column(
        db.Enum(WholesalerStatus),
        default=WholesalerStatus.PENDING,
        nullable=False,
        index=True)
    # Set only while status is REJECTED.
    rejection_reason = db.Column(db.Text, nullable=True)
    # Set only while status is SUSPENDED.
    suspension_reason = db.Column(db.Text, nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    def __repr__(self):
        return f'<Wholesaler {self.id} status={self.status}>'


class Retailer(db.Model):
    __tablename__ = 'retailers'

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'profiles.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    business_name = db.Column(db.String(100), nullable=False)
    # Shown to wholesalers instead of the retailer's identity.
    anonymous_code = db.Column(db.String(20), unique=True, nullable=True)
    status = db.Column(
        db.Enum(RetailerStatus),
        default=RetailerStatus.ACTIVE,
        nullable=False)
    suspension_reason = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    def __repr__(self):
        return f'<Retailer {self.id} status={self.status}>'


class Order(db.Model):
    __tablename__ = 'orders'

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(40), unique=True, nullable=False)
    wholesaler_id = db.Column(
        db.Integer,
        db.ForeignKey('wholesalers.id'),
        nullable=False,
        index=True)
    retailer_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'retailers.id',
            ondelete='SET NULL'),
        nullable=True,
        index=True)
    status = db.Column(
        db.Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False)
    total_amount = db.Column(db.Integer, nullable=False)
    # NULL means the wholesaler has not seen the order yet.
    wholesaler_read_at = db.Column(db.DateTime, nullable=True)
    delivered_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    wholesaler = db.relationship('Wholesaler', foreign_keys=[wholesaler_id])
    retailer = db.relationship('Retailer', foreign_keys=[retailer_id])
    settlement = db.relationship(
        'Settlement',
        backref='order',
        uselist=False)

    __table_args__ = (
        CheckConstraint(
            'total_amount >= 0',
            name='check_order_total_non_negative'),
    )

    def __repr__(self):
        return f'<Order {self.order_number} status={self.status}>'


class Settlement(db.Model):
    __tablename__ = 'settlements'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey('orders.id'),
        unique=True,
        nullable=False)
    wholesaler_id = db.Column(
        db.Integer,
        db.ForeignKey('wholesalers.id'),
        nullable=False,
        index=True)
    order_amount = db.Column(db.Integer, nullable=False)
    platform_fee_rate = db.Column(db.Numeric(5, 4), nullable=False)
    # floor(order_amount * platform_fee_rate)
    platform_fee = db.Column(db.Integer, nullable=False)
    # order_amount - platform_fee
    wholesaler_amount = db.Column(db.Integer, nullable=False)
    status = db.Column(
        db.Enum(SettlementStatus),
        default=SettlementStatus.PENDING,
        nullable=False)
    # delivered_at + payout delay; NULL until the order is delivered.
    scheduled_payout_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    __table_args__ = (
        CheckConstraint(
            'platform_fee_rate >= 0 AND platform_fee_rate <= 1',
            name='check_platform_fee_rate_range'),
    )

    def __repr__(self):
        return f'<Settlement {self.id} order={self.order_id}>'


class Inquiry(db.Model):
    __tablename__ = 'inquiries'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'profiles.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    inquiry_type = db.Column(db.Enum(InquiryType), nullable=False)
    # Required for RETAILER_TO_WHOLESALER, NULL for WHOLESALER_TO_ADMIN.
    wholesaler_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'wholesalers.id',
            ondelete='CASCADE'),
        nullable=True,
        index=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'orders.id',
            ondelete='SET NULL'),
        nullable=True)
    product_id = db.Column(db.Integer, nullable=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)
    attachment_urls_json = db.Column(db.Text, nullable=True)
    status = db.Column(
        db.Enum(InquiryStatus),
        default=InquiryStatus.OPEN,
        nullable=False)
    admin_reply = db.Column(db.Text, nullable=True)
    replied_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    author = db.relationship('Profile', foreign_keys=[user_id])
    messages = db.relationship(
        'InquiryMessage',
        backref='inquiry',
        lazy='dynamic',
        cascade='all, delete-orphan',
        passive_deletes=True)

    @property
    def attachment_urls(self):
        if self.attachment_urls_json:
            return json.loads(self.attachment_urls_json)
        return []

    def __repr__(self):
        return f'<Inquiry {self.id} type={self.inquiry_type}>'


class InquiryMessage(db.Model):
    __tablename__ = 'inquiry_messages'

    id = db.Column(db.Integer, primary_key=True)
    inquiry_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'inquiries.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    sender_type = db.Column(db.Enum(MessageSenderType), nullable=False)
    sender_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'profiles.id',
            ondelete='SET NULL'),
        nullable=True)
    content = db.Column(db.Text, nullable=False)
    edited_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True)

    def __repr__(self):
        return f'<InquiryMessage {self.id} inquiry={self.inquiry_id}>'


class CSThread(db.Model):
    __tablename__ = 'cs_threads'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'profiles.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    title = db.Column(db.String(200), nullable=False)
    status = db.Column(
        db.Enum(CSThreadStatus),
        default=CSThreadStatus.OPEN,
        nullable=False)
    closed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    user = db.relationship('Profile', foreign_keys=[user_id])
    messages = db.relationship(
        'CSMessage',
        backref='thread',
        lazy='dynamic',
        cascade='all, delete-orphan',
        passive_deletes=True)

    def __repr__(self):
        return f'<CSThread {self.id} status={self.status}>'


class CSMessage(db.Model):
    __tablename__ = 'cs_messages'

    id = db.Column(db.Integer, primary_key=True)
    cs_thread_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'cs_threads.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    sender_type = db.Column(db.Enum(CSSenderType), nullable=False)
    sender_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'profiles.id',
            ondelete='SET NULL'),
        nullable=True)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True)

    def __repr__(self):
        return f'<CSMessage {self.id} thread={self.cs_thread_id}>'


class AuditLog(db.Model):
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'profiles.id',
            ondelete='SET NULL'),
        nullable=True,
        index=True)
    # e.g., wholesaler_approve, cs_close
    action = db.Column(db.String(100), nullable=False, index=True)
    # wholesaler, retailer, cs_thread, etc.
    target_type = db.Column(db.String(50), nullable=True)
    target_id = db.Column(db.Integer, nullable=True)
    # JSON snapshot of the key fields
    details_json = db.Column(db.Text, nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True)

    actor = db.relationship('Profile', foreign_keys=[user_id])

    def get_details(self):
        if self.details_json:
            return json.loads(self.details_json)
        return {}

    def __repr__(self):
        return f'<AuditLog {self.id} action={self.action}>'


class AccountDeletion(db.Model):
    __tablename__ = 'account_deletions'

    id = db.Column(db.Integer, primary_key=True)
    # Plain column: the record must outlive the profile it describes.
    profile_id = db.Column(db.Integer, nullable=False, index=True)
    reason = db.Column(db.String(200), nullable=False)
    feedback = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    def __repr__(self):
        return f'<AccountDeletion profile={self.profile_id}>'


class FAQ(db.Model):
    __tablename__ = 'faqs'

    id = db.Column(db.Integer, primary_key=True)
    question = db.Column(db.Text, nullable=False)
    answer = db.Column(db.Text, nullable=False)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    def __repr__(self):
        return f'<FAQ {self.id} order={self.display_order}>'


class Announcement(db.Model):
    __tablename__ = 'announcements'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    def __repr__(self):
        return f'<Announcement {self.id}>'


class VOCFeedback(db.Model):
    __tablename__ = 'voc_feedbacks'

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'profiles.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True)

    def __repr__(self):
        return f'<VOCFeedback {self.id}>'
