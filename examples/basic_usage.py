"""Basic usage example for NovoGrad."""

import numpy as np
import tensorflow as tf
from novograd_optimizer import NovoGrad

# Synthetic linear regression problem
rng = np.random.default_rng(0)
true_w = np.array([[2.0], [-3.0], [0.5]], dtype=np.float32)
x_train = rng.normal(size=(512, 3)).astype(np.float32)
y_train = x_train @ true_w + 1.0 + 0.01 * rng.normal(size=(512, 1)).astype(np.float32)

# Model variables
w = tf.Variable(tf.zeros([3, 1]), name="w")
b = tf.Variable(tf.zeros([1]), name="b")

# Create optimizer
optimizer = NovoGrad([w, b], learning_rate=0.05, weight_decay=1e-4)

dataset = tf.data.Dataset.from_tensor_slices((x_train, y_train)).shuffle(512).batch(32)

# Train
for epoch in range(20):
    for x, y in dataset:
        with tf.GradientTape() as tape:
            loss = tf.reduce_mean(tf.square(x @ w + b - y))
        grads = tape.gradient(loss, [w, b])
        optimizer.apply_gradients(zip(grads, [w, b]))
    # The caller owns the learning rate schedule
    optimizer.learning_rate *= 0.9
    print(f"epoch {epoch + 1:2d}: loss={float(loss):.5f}")

print("learned w:", w.numpy().ravel(), "b:", b.numpy())

# Print optimizer stats
optimizer.print_state_stats()
