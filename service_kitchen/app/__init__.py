"""
Kitchen Display Service application package.

Serves the active-order board to kitchen displays from a polled cache and
relays status changes to the Order Service, publishing an order-ready
event once the Order Service has confirmed a READY transition.
"""
