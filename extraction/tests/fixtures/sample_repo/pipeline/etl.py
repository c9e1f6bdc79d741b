def transform_orders(spark):
    return spark.sql("""
        -- name: order_totals
        SELECT customer_id, SUM(total_amount) AS total
        FROM orders o
        JOIN customers c ON o.customer_id = c.id
        GROUP BY customer_id
    """)


def write_output(df, path):
    df.write.parquet(path)
    return execute("not a query")
