"""
Direct messages between users: an append-only log with a read flag.
"""
from sqlalchemy import and_, or_, update
import logging

from ecofinds.errors import InvalidArgument, NotFound
from ecofinds.extensions import db
from ecofinds.models import Message, Product, User
from ecofinds.utils import isoformat, parse_int

logger = logging.getLogger(__name__)


def serialize_message(msg):
    product = msg.product
    return {
        'id': msg.id,
        'sender_id': msg.sender_id,
        'receiver_id': msg.receiver_id,
        'product_id': msg.product_id,
        'message': msg.message,
        'message_type': msg.message_type,
        'is_read': msg.is_read,
        'created_at': isoformat(msg.created_at),
        'product_title': product.title if product else None,
        'product_image': product.image_url if product else None,
    }


def send_message(sender, receiver_id, text, product_id=None,
                 message_type='text'):
    if not receiver_id or text is None:
        raise InvalidArgument('Receiver ID and message are required')
    if not isinstance(text, str) or not text.strip():
        raise InvalidArgument('Message cannot be empty')

    receiver = db.session.get(User, parse_int(receiver_id, 'Receiver ID'))
    if not receiver:
        raise NotFound('Receiver not found')

    if product_id:
        product_id = parse_int(product_id, 'Product ID')
        if not db.session.get(Product, product_id):
            raise NotFound('Product not found')
    else:
        product_id = None

    msg = Message(
        sender_id=sender.id,
        receiver_id=receiver.id,
        product_id=product_id,
        message=text,
        message_type=message_type or 'text',
        is_read=False
    )
    db.session.add(msg)
    db.session.commit()
    return msg


def list_conversations(user):
    """One entry per (other user, product) pair, most recent first."""
    messages = Message.query.filter(
        or_(Message.sender_id == user.id, Message.receiver_id == user.id)
    ).order_by(Message.created_at.desc(), Message.id.desc()).all()

    conversations = {}
    for msg in messages:
        other_id = (
            msg.receiver_id if msg.sender_id == user.id else msg.sender_id
        )
        key = (other_id, msg.product_id)
        entry = conversations.get(key)
        if entry is None:
            other = msg.receiver if msg.sender_id == user.id else msg.sender
            product = msg.product
            # Messages arrive newest first, so the first one seen is the
            # latest.
            entry = conversations[key] = {
                'other_user_id': other_id,
                'other_username': other.username,
                'other_email': other.email,
                'product_id': msg.product_id,
                'product_title': product.title if product else None,
                'product_image': product.image_url if product else None,
                'last_message': msg.message,
                'last_message_time': isoformat(msg.created_at),
                'unread_count': 0,
            }
        if msg.receiver_id == user.id and not msg.is_read:
            entry['unread_count'] += 1

    return list(conversations.values())


def get_thread(user, other_user_id, product_id=None):
    """Messages between ``user`` and another user, oldest first.

    Marks the other user's messages to ``user`` as read.
    """
    other = db.session.get(User, other_user_id)
    if not other:
        raise NotFound('User not found')

    query = Message.query.filter(
        or_(
            and_(Message.sender_id == user.id,
                 Message.receiver_id == other.id),
            and_(Message.sender_id == other.id,
                 Message.receiver_id == user.id),
        )
    )
    if product_id:
        query = query.filter(Message.product_id == product_id)
    messages = query.order_by(
        Message.created_at.asc(), Message.id.asc()).all()
    payload = [serialize_message(m) for m in messages]

    mark_read(user, sender_id=other.id)
    return other, payload


def mark_read(user, sender_id=None, product_id=None):
    """Flip unread messages received by ``user`` to read. Returns the number
    of rows changed."""
    stmt = update(Message).where(
        Message.receiver_id == user.id,
        Message.is_read.is_(False)
    )
    if sender_id:
        stmt = stmt.where(
            Message.sender_id == parse_int(sender_id, 'Sender ID'))
    if product_id:
        stmt = stmt.where(
            Message.product_id == parse_int(product_id, 'Product ID'))

    result = db.session.execute(
        stmt.values(is_read=True).execution_options(
            synchronize_session=False)
    )
    db.session.commit()
    return result.rowcount


def unread_count(user):
    return Message.query.filter_by(
        receiver_id=user.id,
        is_read=False
    ).count()
