from threading import Thread

from rwatch.runtime import PROCESS_CORRELATION_ID, RuntimeContext


def test_counter_starts_at_zero_and_increments():
    ctx = RuntimeContext()
    assert ctx.last_correlation_id == PROCESS_CORRELATION_ID == 0
    assert [ctx.next_correlation_id() for _ in range(3)] == [1, 2, 3]
    assert ctx.last_correlation_id == 3


def test_ids_are_unique_under_concurrent_issuance():
    ctx = RuntimeContext()
    per_thread = 500
    results: list[list[int]] = [[] for _ in range(8)]

    def worker(out):
        for _ in range(per_thread):
            out.append(ctx.next_correlation_id())

    threads = [Thread(target=worker, args=(out,)) for out in results]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    issued = [i for out in results for i in out]
    assert len(set(issued)) == len(issued) == 8 * per_thread
    assert sorted(issued) == list(range(1, 8 * per_thread + 1))
    # each thread sees strictly increasing ids
    for out in results:
        assert out == sorted(out)
