"""
Example of using ElasticLog as a context manager.
"""

from elasticlog import ElasticLog, ElasticLogConfig


def report(error):
    print(f"shipping problem: {error}")


def main():
    # Using context manager initializes, then flushes and closes on exit
    config = ElasticLogConfig(host="localhost:9200", index_bucket_interval_sec=0)
    with ElasticLog(config, on_error=report) as shipper:
        shipper.log("events", {"event": "started"})

        for i in range(20):
            shipper.log("events", {"event": "item", "item_id": i})

        shipper.log("events", {"event": "finished"})

    print("Done! Events have been sent.")


if __name__ == "__main__":
    main()
