"""Delivery partner assignment — command and handler.

Covers both an admin assigning a partner and a delivery partner accepting a
shipped order from the open pool.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import Order

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class AssignDeliveryPartner:
    order_id = Identifier(required=True)
    delivery_partner_id = Identifier(required=True)
    actor_role = String(required=True, max_length=20)


@marketplace.command_handler(part_of=Order)
class AssignDeliveryPartnerHandler:
    @handle(AssignDeliveryPartner)
    def assign_delivery_partner(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.assign_delivery_partner(command.delivery_partner_id, command.actor_role)
        repo.add(order)

        logger.info(
            "Delivery partner assigned",
            order_id=str(order.id),
            delivery_partner_id=str(command.delivery_partner_id),
            assigned_by=command.actor_role,
        )
        return str(order.id)
