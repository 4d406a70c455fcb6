# faasflow

A small framework for writing event-driven functions. Every incoming message,
whatever transport it arrived on, is turned into a CloudEvents-style `Event`
and passed through a chain of middleware to your handler. Output events can be
published onward to NATS, Kinesis, SNS or SQS through client objects you
supply. The package uses only the standard library.

## Concepts

- **`Event`** (`faasflow.event`): an event with `id`, `source`, `type`,
  `subject`, `time`, `extensions` and encoded `data`. `set_data(content_type,
  data)` encodes a value (JSON unless a non-JSON content type is given),
  `data_as()` decodes it, `set_extension(name, value)` stores extensions under
  lower-cased names. `to_dict()`, `to_json()` and `json_bytes(event)` give the
  structured JSON form; `Event.from_dict()` and `Event.from_json()` read it
  back and raise `NotValidError` on bad input.
- **Errors** (`faasflow.event`): `FaasError` is the base of `InternalError`,
  `NotValidError` and `TriggerNotImplementedError`.
- **`InOut`** (`faasflow.event`): pairs an input event with the output event,
  the error and the context of one handler call.
- **`Middleware`** (`faasflow.middleware`): hooks run around the handler:
  `before_all`, `before`, `after`, `after_all` and `close`. Each hook can be
  passed as a callable to the constructor or overridden in a subclass; a hook
  that is neither leaves the context unchanged.
- **`HandlerWrapper`** (`faasflow.handler_wrapper`): calls `handler(ctx, event)`
  for every `InOut` of a batch, with the middleware chain around it. Events
  whose ids are listed in `faas.cloudevents.handle.discard.ids` are skipped,
  and an `InOut` that already carries an error is discarded. A failing batch
  hook raises `InternalError`; a failing handler stores an `InternalError` on
  its `InOut`. `default_handler_wrapper(handler, *middlewares)` builds one with
  options from configuration.
- **`Handler`** (`faasflow.handler`): processes a single event, returns the
  handler's output and raises `InternalError` if handling failed. Events of
  type `com.amazon.sqs.message` or `aws.sqs.message` are first unwrapped to
  the SQS body, or to the SNS message that body carries (`from_sqs`).

## Triggers

- **AWS Lambda** (`faasflow.lambda_handler`, `faasflow.lambda_events`):
  `LambdaHandler` converts Kinesis, SQS, SNS, S3 and DynamoDB records, and
  scheduled (`aws.events`) invocations, into `Event` values, adding the
  `awsrequestid` and `invokedfunctionarn` extensions. Other record sources
  raise `TriggerNotImplementedError`. `LambdaHelper` is a callable with the
  `(event, context)` signature a Lambda runtime expects;
  `new_default_lambda_helper(handler)` builds one with options from
  configuration.
- **NATS** (`faasflow.nats_listener`): `SubscriberListener` and `NatsHelper`
  subscribe to the configured subjects within a queue group, using a
  connection object with a `queue_subscribe(subject, queue, callback)` method.
- **Kafka** (`faasflow.kafka_listener`): `KafkaHelper` consumes the configured
  topics with bounded concurrency, using readers made by a `reader_factory`
  you supply; each reader's `read_message()` returns a `KafkaMessage`.
- **HTTP** (`faasflow.http_receiver`): `CloudEventsHelper` serves events over
  HTTP with the standard library server. `parse_http_event(headers, body)`
  reads binary (`ce-*` headers) or structured
  (`application/cloudevents+json`) mode. The response is 400 for a request
  without a valid event, 500 if handling failed, 202 if the handler returned
  nothing, and otherwise 200 with the output event in binary mode.

## Publishing

`faasflow.publishing` defines the `EventRepository` protocol,
`EventWrapperProvider` (delegates to a repository) and the `EventPublisher`
middleware. After a batch without errors, `EventPublisher.after_all` gives
every handler output a new id, the current time, a `parentid` extension and
the input's extensions, and publishes them. `new_event_publisher(events)`
returns `None` when `faas.cloudevents.plugins.publisher.enabled` is false.

Repositories live in `faasflow.datastore`, each wrapping a client object you
provide:

- `nats_client.NatsClient`: `conn.publish(subject, data)`; failures are logged
  and the event skipped.
- `kinesis_client.KinesisClient`: one event is sent with
  `client.publish(ctx, record)`, several with one
  `client.bulk_publish(ctx, entries, stream)` per subject. The partition key
  is the `partitionkey` extension, or `unknown`.
- `sns_client.SnsClient`: `client.publish(ctx, input)` per event, wrapped as
  `{"default": ...}` with message structure `json`.
- `sqs_client.SqsClient`: `client.resolve_queue_url(ctx, name)` then
  `client.publish(ctx, input)`; the `group` extension becomes the message
  group id.

Kinesis, SNS and SQS publishing is tried up to five times before an
`InternalError` is raised. An event whose `target` extension is `data` is
published as its bare data rather than the full envelope (`raw_message`).

## Example

```python
from faasflow.event import Event
from faasflow.handler_wrapper import default_handler_wrapper
from faasflow.lambda_handler import new_default_lambda_helper
from faasflow.middleware import Middleware


class Audit(Middleware):
    def after(self, ctx, event, out, err):
        print("handled", event.id, "error:", err)
        return ctx


def handle(ctx, event):
    out = Event(id="changeme", source="changeme", type="changeme", subject="changeme")
    out.set_extension("partitionkey", "changeme")
    out.set_data("text/plain", "changeme")
    return out


wrapper = default_handler_wrapper(handle, Audit())
lambda_entry_point = new_default_lambda_helper(wrapper)
```

## Configuration

Settings are held by `faasflow.config.Config`; the module-level
`faasflow.config.config` is the instance the package reads. A value comes
from the overrides given to `Config(values=...)`, else from an environment
variable named after the key (upper-cased, dots replaced by underscores, e.g.
`FAAS_CMD_DEFAULT`), else from the default.

| Key | Default | Meaning |
| --- | --- | --- |
| `faas.cmd.default` | empty | command run when none is given |
| `faas.cloudevents.handle.discard.ids` | empty | comma-separated event ids to skip |
| `faas.cloudevents.plugins.publisher.enabled` | `true` | enable the publisher middleware |
| `faas.datastore.event.provider` | `nats` | `nats`, `kinesis`, `sns` or `sqs` |
| `faas.lambda.skip` | `false` | acknowledge Lambda events without handling them |
| `faas.nats.subjects` | `changeme` | NATS subjects to subscribe to |
| `faas.nats.queue` | `changeme` | NATS queue group |
| `faas.kafka.topics` | `changeme` | Kafka topics to consume |
| `faas.kafka.brokers` | `localhost:9090` | Kafka brokers |
| `faas.kafka.groupId` | `changeme` | Kafka consumer group |
| `faas.kafka.concurrency` | `10` | records handled at once per topic |
| `faas.kafka.queueCapacity`, `minBytes`, `maxBytes`, `startOffset`, `readBatchTimeout`, `maxWait` | `100`, `1`, `10485760`, `-1`, `2.0`, `2.0` | passed to the reader factory in `KafkaOptions` |
| `faas.provider.kinesis.randomPartitionKey` | `false` | carried in `KinesisOptions.random_partition_key` |

## Commands

`faasflow.cli` assembles an `Application` (handler, middlewares, context and
connections) and a list of `Command` objects (`new_nats()`, `new_kafka()`,
`new_cloudevents()`) and dispatches with `run(app, commands, argv)`. When no
command is named, the one set in `faas.cmd.default` is used.
`select_event_repository(factories)` builds the repository for the configured
provider from a mapping of factories keyed `nats`, `kinesis`, `sns`, `sqs`.

## What it does not do

- There is no installed console script: call `faasflow.cli.run` from your own
  program with your handler and connections.
- No NATS, Kafka or AWS client library is bundled. Connections, readers and
  AWS clients are objects you pass in with the methods described above.
- There is no Lambda command in `faasflow.cli`; register a `LambdaHelper` with
  your Lambda runtime directly.
- Kinesis partition keys are not randomised; the `randomPartitionKey` flag is
  only read into the options.