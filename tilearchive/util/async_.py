# This file is part of the TileArchive project.
# Copyright (C) 2026 TileArchive contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Thread pool for concurrent tile downloads.

Results are returned in the order of the arguments. With
``use_result_objects=True`` each result is wrapped in an
:class:`AsyncResult` and exceptions are returned instead of raised.
"""

import queue
import sys
import threading

MAX_POOL_SIZE = 20


class AsyncResult(object):
    """
    Result of one call. `exception` is the ``sys.exc_info()`` of a
    failed call.
    """
    __slots__ = ('result', 'exception')

    def __init__(self, result=None, exception=None):
        self.result = result
        self.exception = exception

    @property
    def ok(self):
        return self.exception is None

    def __repr__(self):
        return '<AsyncResult result=%r exception=%r>' % (
            self.result, self.exception and self.exception[1])


def _call(func, args):
    try:
        return AsyncResult(func(*args))
    except Exception:
        return AsyncResult(exception=sys.exc_info())


class _Worker(threading.Thread):
    def __init__(self, tasks, results):
        threading.Thread.__init__(self)
        self.daemon = True
        self.tasks = tasks
        self.results = results

    def run(self):
        for index, func, args in iter(self.tasks.get, None):
            self.results.put((index, _call(func, args)))


def _discard(q):
    while True:
        try:
            q.get_nowait()
        except queue.Empty:
            return


class ThreadPool(object):
    """
    Call functions with up to `size` worker threads. A pool with less
    than two workers calls all functions in the current thread.
    """
    def __init__(self, size=4):
        self.size = size

    def map(self, func, *args, **kw):
        return list(self.imap(func, *args, **kw))

    def imap(self, func, *args, **kw):
        return self.starmap(func, zip(*args), **kw)

    def starmap(self, func, args, use_result_objects=False):
        calls = [(func, a) for a in args]
        if self.size < 2 or len(calls) < 2:
            results = (_call(f, a) for f, a in calls)
        else:
            results = self._call_threaded(calls)
        return self._unwrap(results, use_result_objects)

    def _unwrap(self, results, use_result_objects):
        for result in results:
            if use_result_objects:
                yield result
            elif result.ok:
                yield result.result
            else:
                _exc_class, exc, tb = result.exception
                raise exc.with_traceback(tb)

    def _call_threaded(self, calls):
        tasks = queue.Queue()
        results = queue.Queue()
        workers = [_Worker(tasks, results) for _ in range(min(self.size, len(calls)))]
        for index, (func, args) in enumerate(calls):
            tasks.put((index, func, args))
        for worker in workers:
            tasks.put(None)
            worker.start()

        finished = {}
        try:
            for index in range(len(calls)):
                while index not in finished:
                    done, result = results.get()
                    finished[done] = result
                yield finished.pop(index)
        finally:
            # stop workers early if the caller does not consume all results
            _discard(tasks)
            for worker in workers:
                tasks.put(None)


def imap(func, *args, **kw):
    size = kw.pop('size', None) or min(len(args[0]), MAX_POOL_SIZE)
    return ThreadPool(size).imap(func, *args, **kw)


def starmap(func, args, **kw):
    size = kw.pop('size', None) or min(len(args), MAX_POOL_SIZE)
    return ThreadPool(size).starmap(func, args, **kw)
