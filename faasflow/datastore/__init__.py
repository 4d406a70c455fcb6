"""Event repositories that publish to NATS, Kinesis, SNS and SQS through supplied clients."""