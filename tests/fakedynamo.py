# tests/fakedynamo.py
"""In-memory stand-in for a boto3 DynamoDB ``Table`` resource.

Supports the calls the presentation repository makes: get/put/delete/update
item, query with ``Key`` conditions (primary or GSI1), and
``meta.client.batch_write_item``.
"""
import copy
import re

from botocore.exceptions import ClientError


def _check_types(value):
    if isinstance(value, float):
        raise TypeError("Float types are not supported. Use Decimal types instead.")
    if isinstance(value, dict):
        for v in value.values():
            _check_types(v)
    elif isinstance(value, list):
        for v in value:
            _check_types(v)


def _matches(condition, item):
    expr = condition.get_expression()
    op = expr["operator"]
    values = expr["values"]
    if op == "AND":
        return all(_matches(v, item) for v in values)
    attr = values[0].name
    if op == "=":
        return item.get(attr) == values[1]
    if op == "attribute_exists":
        return attr in item
    if op == "begins_with":
        return isinstance(item.get(attr), str) and item[attr].startswith(values[1])
    raise NotImplementedError(op)


class _Meta:
    def __init__(self, client):
        self.client = client


class FakeDynamoClient:
    def __init__(self, table):
        self._table = table
        self.batch_calls = []
        # Number of requests to leave unprocessed on each successive call
        self.unprocessed_plan = []

    def batch_write_item(self, RequestItems):
        requests = list(RequestItems[self._table.name])
        assert len(requests) <= 25, "BatchWriteItem accepts at most 25 requests"
        self.batch_calls.append(requests)
        skip = self.unprocessed_plan.pop(0) if self.unprocessed_plan else 0
        processed = requests[: len(requests) - skip] if skip else requests
        leftover = requests[len(requests) - skip :] if skip else []
        for req in processed:
            if "PutRequest" in req:
                self._table.put_item(Item=req["PutRequest"]["Item"])
            elif "DeleteRequest" in req:
                self._table.delete_item(Key=req["DeleteRequest"]["Key"])
        return {"UnprocessedItems": {self._table.name: leftover} if leftover else {}}


class FakeTable:
    def __init__(self, name="presentations-test", page_size=None):
        self.name = name
        self.items = {}
        self.page_size = page_size
        self.meta = _Meta(FakeDynamoClient(self))

    def get_item(self, Key):
        item = self.items.get((Key["pk"], Key["sk"]))
        return {"Item": copy.deepcopy(item)} if item is not None else {}

    def put_item(self, Item):
        _check_types(Item)
        self.items[(Item["pk"], Item["sk"])] = copy.deepcopy(Item)
        return {}

    def delete_item(self, Key):
        self.items.pop((Key["pk"], Key["sk"]), None)
        return {}

    def update_item(self, Key, UpdateExpression, ExpressionAttributeValues=None, ExpressionAttributeNames=None,
                    ConditionExpression=None):
        names = ExpressionAttributeNames or {}
        values = ExpressionAttributeValues or {}
        _check_types(values)
        assert UpdateExpression.startswith("SET ")
        current = self.items.get((Key["pk"], Key["sk"]), {})
        if ConditionExpression is not None and not _matches(ConditionExpression, current):
            raise ClientError(
                {"Error": {"Code": "ConditionalCheckFailedException", "Message": "The conditional request failed"}},
                "UpdateItem",
            )
        item = self.items.setdefault((Key["pk"], Key["sk"]), dict(Key))
        for clause in UpdateExpression[len("SET "):].split(","):
            lhs, rhs = [part.strip() for part in clause.split("=")]
            attr = names.get(lhs, lhs)
            assert re.match(r"^[A-Za-z_]+$", attr), attr
            item[attr] = copy.deepcopy(values[rhs])
        return {}

    def query(self, KeyConditionExpression, IndexName=None, ExclusiveStartKey=None):
        sort_attr = "gsi1sk" if IndexName else "sk"
        matched = [it for it in self.items.values() if _matches(KeyConditionExpression, it)]
        matched.sort(key=lambda it: it.get(sort_attr, ""))
        if ExclusiveStartKey is not None:
            start_at = next(
                i for i, it in enumerate(matched)
                if (it["pk"], it["sk"]) == (ExclusiveStartKey["pk"], ExclusiveStartKey["sk"])
            )
            matched = matched[start_at + 1:]
        resp = {"Items": copy.deepcopy(matched)}
        if self.page_size and len(matched) > self.page_size:
            page = matched[: self.page_size]
            resp["Items"] = copy.deepcopy(page)
            resp["LastEvaluatedKey"] = {"pk": page[-1]["pk"], "sk": page[-1]["sk"]}
        return resp
