"""
Content Models

Per-user notifications and site-wide announcements.
"""

from datetime import datetime
from .database import db
from .utils import generate_uuid


class Notification(db.Model):
    __tablename__ = 'notifications'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    user_id = db.Column(db.String(36), db.ForeignKey('profiles.id'), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    content = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(50), nullable=False)
    reference_id = db.Column(db.String(36))
    action_url = db.Column(db.String(1024))
    is_read = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @classmethod
    def create(cls, user_id, title, content, type, reference_id=None, action_url=None):
        """Add a notification to the session; the caller commits"""
        notification = cls(
            user_id=user_id,
            title=title,
            content=content,
            type=type,
            reference_id=reference_id,
            action_url=action_url,
            is_read=False,
        )
        db.session.add(notification)
        return notification

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'title': self.title,
            'content': self.content,
            'type': self.type,
            'reference_id': self.reference_id,
            'action_url': self.action_url,
            'is_read': self.is_read,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Announcement(db.Model):
    __tablename__ = 'announcements'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    title = db.Column(db.String(255), nullable=False)
    content = db.Column(db.Text, nullable=False)
    is_active = db.Column(db.Boolean, default=True)
    start_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    end_date = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    EDITABLE_FIELDS = ('title', 'content', 'is_active', 'start_date', 'end_date')

    @classmethod
    def visible_query(cls, now=None):
        """Active announcements whose window contains `now`, newest first"""
        now = now or datetime.utcnow()
        return cls.query.filter(
            cls.is_active.is_(True),
            cls.start_date <= now,
            db.or_(cls.end_date.is_(None), cls.end_date > now),
        ).order_by(cls.created_at.desc())

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'content': self.content,
            'is_active': self.is_active,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'end_date': self.end_date.isoformat() if self.end_date else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
