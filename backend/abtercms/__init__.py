"""abtercms websites service: DynamoDB-backed CRUD behind a FastAPI surface."""
