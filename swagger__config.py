"""
Swagger/OpenAPI configuration for the Bookdesk API
"""

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec",
            "route": "/apispec.json",
            "rule_filter": lambda rule: True,
            "model_filter": lambda tag: True,
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/api/docs",
}

SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Bookdesk API",
        "description": "Multi-tenant booking API: appointments, staff, services and sales",
        "contact": {"email": "support@bookdesk.app"},
        "version": "1.0.0",
    },
    "host": "",
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": 'JWT Authorization header using the Bearer scheme. Example: "Authorization: Bearer {token}"',
        }
    },
    "security": [{"Bearer": []}],
    "tags": [
        {"name": "Authentication", "description": "Sign-up, login and role selection"},
        {"name": "Companies", "description": "Tenant companies"},
        {"name": "Services", "description": "Service catalogue and categories"},
        {"name": "Staff", "description": "Company staff"},
        {"name": "Appointments", "description": "Appointment booking and lifecycle"},
        {"name": "Sales", "description": "Sale recording"},
    ],
    "definitions": {
        "Error": {
            "type": "object",
            "properties": {
                "success": {"type": "boolean", "example": False},
                "message": {"type": "string"},
                "errors": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "field": {"type": "string"},
                            "message": {"type": "string"},
                        },
                    },
                },
            },
        },
        "Pagination": {
            "type": "object",
            "properties": {
                "total": {"type": "integer"},
                "page": {"type": "integer"},
                "limit": {"type": "integer"},
                "offset": {"type": "integer"},
                "totalPages": {"type": "integer"},
                "currentPage": {"type": "integer"},
            },
        },
        "Appointment": {
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "clientId": {"type": "string"},
                "companyId": {"type": "string"},
                "serviceId": {"type": "string"},
                "staffId": {"type": "string"},
                "spaceId": {"type": "string"},
                "saleId": {"type": "string"},
                "date": {"type": "string", "format": "date"},
                "time": {"type": "string", "example": "14:30"},
                "duration": {"type": "integer"},
                "status": {"type": "integer", "enum": [0, 1, 2, 3, 4, 5]},
                "statusLabel": {"type": "string"},
                "clientName": {"type": "string"},
                "serviceName": {"type": "string"},
                "providerName": {"type": "string"},
                "spaceName": {"type": "string"},
            },
        },
        "Sale": {
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "appointmentId": {"type": "string"},
                "userId": {"type": "string"},
                "companyId": {"type": "string"},
                "staffId": {"type": "string"},
                "totalAmount": {"type": "number"},
                "subtotal": {"type": "number"},
                "discountAmount": {"type": "number"},
                "items": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "itemType": {"type": "string", "enum": ["service", "product"]},
                            "serviceId": {"type": "string"},
                            "variantId": {"type": "string"},
                            "quantity": {"type": "integer"},
                            "unitPrice": {"type": "number"},
                            "discount": {"type": "number"},
                        },
                    },
                },
            },
        },
    },
}
