from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from ecofinds.errors import InvalidArgument
from ecofinds.services import chatbot_service, message_service
from ecofinds.utils import get_json_body, user_summary
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('messages', __name__)


@bp.route('/api/messages/conversations', methods=['GET'])
@login_required
def list_conversations():
    return jsonify(message_service.list_conversations(current_user))


@bp.route('/api/messages/<int:user_id>', methods=['GET'])
@login_required
def get_thread(user_id):
    product_id = request.args.get('productId', type=int)
    other, messages = message_service.get_thread(
        current_user, user_id, product_id=product_id)
    return jsonify({
        'messages': messages,
        'otherUser': user_summary(other),
    })


@bp.route('/api/messages/send', methods=['POST'])
@login_required
def send_message():
    data = get_json_body()
    msg = message_service.send_message(
        current_user,
        data.get('receiver_id'),
        data.get('message'),
        product_id=data.get('product_id'),
        message_type=data.get('message_type', 'text')
    )
    logger.info(
        "Message %s sent from %s to %s",
        msg.id, msg.sender_id, msg.receiver_id)

    return jsonify({
        'message': 'Message sent successfully',
        'newMessage': message_service.serialize_message(msg),
    }), 201


@bp.route('/api/messages/read', methods=['PUT'])
@login_required
def mark_read():
    data = get_json_body()
    updated = message_service.mark_read(
        current_user,
        sender_id=data.get('sender_id'),
        product_id=data.get('product_id')
    )
    return jsonify({
        'message': 'Messages marked as read',
        'updatedCount': updated,
    })


@bp.route('/api/messages/unread/count', methods=['GET'])
@login_required
def unread_count():
    return jsonify({'unreadCount': message_service.unread_count(current_user)})


@bp.route('/api/messages/chatbot', methods=['POST'])
def chatbot():
    data = get_json_body()
    message = data.get('message')
    if not message or not isinstance(message, str):
        raise InvalidArgument('Message is required')
    return jsonify(chatbot_service.reply(message))
