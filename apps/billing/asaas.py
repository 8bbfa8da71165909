"""
This module handles communication with the Asaas payment gateway.

Features:
- Create customers
- Create one-off payments
- Create recurring subscriptions
- Handle API errors
"""

import logging
from typing import Dict, Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class AsaasAPIError(Exception):
    """
    Custom exception for Asaas API errors

    Carries the gateway's error code (e.g. CUSTOMER_ALREADY_EXISTS) when
    the response provides one.
    """

    def __init__(self, message, code=None, status_code=None):
        self.code = code
        self.status_code = status_code
        super().__init__(message)


class AsaasAPIClient:

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.ASAAS_API_KEY
        self.base_url = base_url or settings.ASAAS_API_URL

    def _get_headers(self) -> Dict[str, str]:
        return {
            'Content-Type': 'application/json',
            'access_token': self.api_key,
        }

    def _post(self, endpoint: str, data: Dict) -> Dict:
        url = f"{self.base_url}{endpoint}"

        try:
            logger.info(f"Making POST request to {url}")
            response = requests.post(url, headers=self._get_headers(), json=data, timeout=30)
        except requests.exceptions.Timeout:
            raise AsaasAPIError("Request timeout - Asaas API did not respond")
        except requests.exceptions.ConnectionError:
            raise AsaasAPIError("Connection error - Could not reach Asaas API")
        except requests.exceptions.RequestException as e:
            raise AsaasAPIError(f"Request error: {str(e)}")

        logger.info(f"Response status: {response.status_code}")

        try:
            response_data = response.json()
        except ValueError:
            raise AsaasAPIError(
                response.text or f"API returned {response.status_code}",
                status_code=response.status_code,
            )

        if response.status_code in [200, 201] and response_data.get('id'):
            return response_data

        # Asaas answers {"errors": [{"code": ..., "description": ...}]}
        errors = response_data.get('errors') or [{}]
        code = errors[0].get('code')
        message = errors[0].get('description') or f"API returned {response.status_code}"
        logger.error(f"Asaas API error on {endpoint}: {code} {message}")
        raise AsaasAPIError(message, code=code, status_code=response.status_code)

    def create_customer(self, name: str, email: str, cpf_cnpj: str, external_reference: str) -> str:
        data = self._post('/customers', {
            'name': name,
            'email': email,
            'cpfCnpj': cpf_cnpj,
            'externalReference': external_reference,
            'notificationDisabled': True,
        })
        logger.info(f"Asaas customer created: {data['id']}")
        return data['id']

    def create_payment(self, customer_id: str, value, description: str, external_reference: str, due_date) -> Dict:
        return self._post('/payments', {
            'customer': customer_id,
            'billingType': 'UNDEFINED',
            'value': float(value),
            'description': description,
            'externalReference': external_reference,
            'dueDate': due_date.isoformat(),
        })

    def create_subscription(self, customer_id: str, value, description: str, external_reference: str,
                            next_due_date, cycle: str = 'MONTHLY') -> Dict:
        return self._post('/subscriptions', {
            'customer': customer_id,
            'billingType': 'UNDEFINED',
            'value': float(value),
            'description': description,
            'externalReference': external_reference,
            'cycle': cycle,
            'nextDueDate': next_due_date.isoformat(),
        })


def payment_url_for(response_data: Dict) -> str:
    """Where the customer pays: invoice page, else bank slip, else the short link."""
    return (
        response_data.get('invoiceUrl')
        or response_data.get('bankSlipUrl')
        or f"https://www.asaas.com/c/{response_data['id']}"
    )
