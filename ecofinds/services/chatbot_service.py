"""
Keyword-matched canned answers for the site help widget.
"""
from datetime import datetime, timezone

# First match wins.
REPLIES = [
    (('sell', 'selling'),
     'To sell items on EcoFinds, you need to create an account and then '
     'click the "Sell" button. You can list your eco-friendly items with '
     'descriptions, prices, and photos.'),
    (('buy', 'buying'),
     'You can browse products by category or search for specific items. '
     'Click on any product to view details and contact the seller.'),
    (('price', 'cost'),
     'Prices are set by individual sellers. You can negotiate prices by '
     'messaging the seller directly on the product page.'),
    (('shipping', 'delivery'),
     'Shipping arrangements are made directly between buyers and sellers. '
     'Contact the seller to discuss delivery options.'),
    (('return', 'refund'),
     'Return policies vary by seller. Please contact the seller directly '
     'to discuss return or refund options.'),
    (('eco', 'environment'),
     'EcoFinds promotes sustainable living by connecting people to buy and '
     'sell eco-friendly products, reducing waste and supporting the '
     'circular economy.'),
    (('help', 'support'),
     'I can help with questions about selling, buying, pricing, shipping, '
     'returns, and our eco-friendly mission. What would you like to know?'),
]

FALLBACK_REPLY = (
    "I can help you with questions about selling, buying, pricing, "
    "shipping, returns, and EcoFinds' eco-friendly mission. Please ask me "
    "something specific!"
)


def reply(message: str) -> dict:
    lowered = message.lower()
    response = FALLBACK_REPLY
    for keywords, text in REPLIES:
        if any(k in lowered for k in keywords):
            response = text
            break
    return {
        'response': response,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }
