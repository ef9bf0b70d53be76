"""Ingress operator: converges IngressController objects into routers, load balancers and DNS."""

__version__ = "0.1.0"
