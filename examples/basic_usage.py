"""
Basic usage example for elasticlog.
"""

from elasticlog import ElasticLog, ElasticLogConfig


def main():
    config = ElasticLogConfig(
        host="localhost:9200",
        flush_interval_ms=2000,          # Send every 2 seconds
        index_bucket_interval_sec=86400,  # One index per day
    )
    shipper = ElasticLog(config)
    shipper.initialize()

    try:
        mappings = {
            "service": {"type": "keyword"},
            "latency_ms": {"type": "long"},
            "ok": {"type": "boolean"},
        }

        for i in range(15):
            shipper.log(
                "requests",
                {"service": "api", "latency_ms": 10 + i, "ok": i % 5 != 0},
                mappings=mappings,
            )

        # Wait until a record sits in its buffer
        done = shipper.log("requests", {"service": "api", "latency_ms": 3, "ok": True})
        if done is not None:
            done.result(timeout=10)

        print(f"Pending records: {shipper.pending_count()}")

        # Force a bulk round now
        result = shipper.flush()
        print(f"Sent {result.records} records in {result.transmitted} request(s)")

    finally:
        # Always close the shipper
        shipper.close()


if __name__ == "__main__":
    main()
