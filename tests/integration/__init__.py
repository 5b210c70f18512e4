"""
Integration tests for the behavior notification engine.

Flows run against moto-mocked DynamoDB, S3, SES, SNS and Step Functions.
"""
