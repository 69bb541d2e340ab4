"""DynamoDB tabanlı defter deposu.

Tablolar: Warehouses, Products, Transactions (hash key: id).
Her tabloda tenant_id üzerinde TenantIndex GSI'ı bulunur.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from stockledger.config import Settings
from stockledger.store.base import LedgerStore, sort_items
from stockledger.store.errors import StoreError, StoreErrorKind, to_store_error

logger = logging.getLogger(__name__)

TENANT_INDEX = "TenantIndex"


def _to_dynamo(obj: Any) -> Any:
    """float değerlerini Decimal'e çevirir (DynamoDB float kabul etmez)."""
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _to_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_to_dynamo(i) for i in obj]
    return obj


def _from_dynamo(obj: Any) -> Any:
    """Decimal ve diger tipleri native Python tiplerine cevirir."""
    if isinstance(obj, Decimal):
        return int(obj) if obj == int(obj) else float(obj)
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_from_dynamo(i) for i in obj]
    return obj


def _filter_expression(filters: dict[str, Any]):
    """Eşitlik filtrelerini tek bir Attr koşulunda birleştirir."""
    condition = None
    for name, value in filters.items():
        clause = Attr(name).eq(_to_dynamo(value))
        condition = clause if condition is None else condition & clause
    return condition


class DynamoLedgerStore(LedgerStore):
    """boto3 DynamoDB resource API üzerinden çalışan depo."""

    def __init__(self, settings: Settings, dynamodb_resource: Optional[Any] = None):
        self.settings = settings
        self._configured = settings.is_configured()
        self._tables: dict[str, Any] = {}

        if not self._configured:
            logger.error("DynamoDB ayarları eksik veya örnek değer içeriyor; depo devre dışı")
            self.dynamodb = None
            return

        # AWS istemcisi - dependency injection destekli
        self.dynamodb = dynamodb_resource or boto3.resource(
            "dynamodb",
            region_name=settings.region,
            endpoint_url=settings.endpoint_url,
        )

    @property
    def is_configured(self) -> bool:
        return self._configured

    def _table(self, relation: str) -> Any:
        if not self._configured:
            raise StoreError(StoreErrorKind.NOT_CONFIGURED)
        if relation not in self._tables:
            self._tables[relation] = self.dynamodb.Table(self.settings.table_name(relation))
        return self._tables[relation]

    # --- Nokta işlemleri ---

    def insert(self, relation: str, item: dict) -> dict:
        table = self._table(relation)
        try:
            table.put_item(
                Item=_to_dynamo(item),
                ConditionExpression=Attr("id").not_exists(),
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Kayıt ekleme hatası [%s]: %s", relation, e)
            raise to_store_error(e) from e
        return dict(item)

    def get(self, relation: str, item_id: str) -> Optional[dict]:
        table = self._table(relation)
        try:
            # Oku-değiştir-yaz akışları son yazmayı görmeli
            resp = table.get_item(Key={"id": item_id}, ConsistentRead=True)
        except (ClientError, BotoCoreError) as e:
            logger.error("Kayıt okuma hatası [%s/%s]: %s", relation, item_id, e)
            raise to_store_error(e) from e
        if "Item" not in resp:
            return None
        return _from_dynamo(resp["Item"])

    def update(self, relation: str, item_id: str, fields: dict) -> dict:
        if not fields:
            raise ValueError("update requires at least one field")
        table = self._table(relation)

        names = {}
        values = {}
        assignments = []
        for i, (name, value) in enumerate(fields.items()):
            names[f"#f{i}"] = name
            values[f":v{i}"] = _to_dynamo(value)
            assignments.append(f"#f{i} = :v{i}")

        try:
            resp = table.update_item(
                Key={"id": item_id},
                UpdateExpression="SET " + ", ".join(assignments),
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ConditionExpression=Attr("id").exists(),
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code == "ConditionalCheckFailedException":
                raise StoreError(StoreErrorKind.NOT_FOUND, f"{relation}/{item_id} not found") from e
            logger.error("Kayıt güncelleme hatası [%s/%s]: %s", relation, item_id, e)
            raise to_store_error(e) from e
        except BotoCoreError as e:
            logger.error("Kayıt güncelleme hatası [%s/%s]: %s", relation, item_id, e)
            raise to_store_error(e) from e
        return _from_dynamo(resp.get("Attributes", {}))

    def delete(self, relation: str, item_id: str) -> None:
        table = self._table(relation)
        try:
            table.delete_item(Key={"id": item_id})
        except (ClientError, BotoCoreError) as e:
            logger.error("Kayıt silme hatası [%s/%s]: %s", relation, item_id, e)
            raise to_store_error(e) from e

    # --- Toplu işlemler ---

    def delete_where(self, relation: str, filters: dict[str, Any]) -> int:
        """Filtreye uyan kayıtları siler.

        Silinecekler TenantIndex yerine tutarlı scan ile bulunur; GSI
        sorgusu az önce yazılmış bir hareketi kaçırıp yetim bırakabilir.
        """
        if not filters:
            raise ValueError("delete_where requires at least one filter")
        table = self._table(relation)
        items = self._paginate(
            table.scan,
            {"FilterExpression": _filter_expression(filters), "ConsistentRead": True},
            relation,
            filters,
        )
        if not items:
            return 0
        try:
            with table.batch_writer() as batch:
                for item in items:
                    batch.delete_item(Key={"id": item["id"]})
        except (ClientError, BotoCoreError) as e:
            logger.error("Toplu silme hatası [%s %s]: %s", relation, filters, e)
            raise to_store_error(e) from e
        return len(items)

    def select(
        self,
        relation: str,
        filters: dict[str, Any],
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[dict]:
        table = self._table(relation)
        remaining = dict(filters)
        params: dict[str, Any] = {}

        tenant_id = remaining.pop("tenant_id", None)
        if tenant_id is not None:
            params["IndexName"] = TENANT_INDEX
            params["KeyConditionExpression"] = Key("tenant_id").eq(tenant_id)

        if remaining:
            params["FilterExpression"] = _filter_expression(remaining)

        operation = table.query if tenant_id is not None else table.scan
        items = self._paginate(operation, params, relation, filters)
        return sort_items(items, order_by, descending)

    def _paginate(self, operation, params: dict, relation: str, filters: dict) -> list[dict]:
        items: list[dict] = []
        try:
            while True:
                resp = operation(**params)
                items.extend(resp.get("Items", []))
                if "LastEvaluatedKey" not in resp:
                    break
                params["ExclusiveStartKey"] = resp["LastEvaluatedKey"]
        except (ClientError, BotoCoreError) as e:
            logger.error("Sorgu hatası [%s %s]: %s", relation, filters, e)
            raise to_store_error(e) from e
        return [_from_dynamo(i) for i in items]

    def probe(self, relation: str) -> None:
        table = self._table(relation)
        try:
            # DescribeTable çağrısı; tablo yoksa ResourceNotFoundException
            table.load()
        except (ClientError, BotoCoreError) as e:
            raise to_store_error(e) from e
